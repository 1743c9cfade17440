"""OAuth2 client: authorize URL building and token endpoint exchanges.

This module provides :class:`OAuth2Template`, the client for one configured
OAuth2 provider integration. It exposes the four operations described by
:class:`OAuth2Operations`:

1. :meth:`~OAuth2Template.build_authorize_url` -- redirect URL for the
   provider's authorize endpoint.
2. :meth:`~OAuth2Template.build_authenticate_url` -- redirect URL for a
   separate sign-in endpoint, falling back to the authorize endpoint.
3. :meth:`~OAuth2Template.exchange_for_access` -- trade an authorization
   code for an :class:`~authgrant.models.AccessGrant`.
4. :meth:`~OAuth2Template.refresh_access` -- trade a refresh token for a
   new :class:`~authgrant.models.AccessGrant`.

Each exchange is exactly one POST. Nothing is retried or cached: blindly
retrying can replay a one-time authorization code.

Two strategies can be injected at construction:

- a :class:`~authgrant.transport.FormSubmitter` that performs the HTTP POST;
- a :data:`GrantFactory` that turns the extracted token fields (and the raw
  response) into the grant returned to the caller.

See Also:
    :mod:`authgrant.encoding` for the URL construction rules.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional, Protocol

from authgrant.config import resolve_credential
from authgrant.encoding import build_auth_url, client_base_url
from authgrant.exceptions import ConfigError, ExchangeError
from authgrant.models import (
    AccessGrant,
    GrantType,
    OAuth2Parameters,
    ProviderConfig,
    RequestConfig,
)
from authgrant.transport import (
    FormSubmitter,
    create_default_submitter,
    extract_oauth_error,
)

logger = logging.getLogger(__name__)

GrantFactory = Callable[
    [str, Optional[str], Optional[str], Optional[int], Mapping[str, Any]],
    AccessGrant,
]
"""Builds the grant from ``(access_token, scope, refresh_token, expires_in, raw)``."""

FormData = Mapping[str, Sequence[str]]


def default_grant_factory(
    access_token: str,
    scope: Optional[str],
    refresh_token: Optional[str],
    expires_in: Optional[int],
    raw: Mapping[str, Any],
) -> AccessGrant:
    """Return a plain :class:`AccessGrant`, ignoring any extra response fields."""
    return AccessGrant(
        access_token=access_token,
        scope=scope,
        refresh_token=refresh_token,
        expires_in=expires_in,
    )


def merge_form(base: FormData, additional: Optional[FormData]) -> dict[str, list[str]]:
    """Merge caller-supplied fields into a token request form.

    Colliding keys are appended to, never overwritten: the caller's values
    follow the base values and are submitted as repeated fields. Key order
    is base keys first, then new keys in the caller's order.

    Raises:
        TypeError: If a value in *additional* is a bare string instead of a
            sequence of strings.
    """
    merged: dict[str, list[str]] = {name: list(values) for name, values in base.items()}
    if additional:
        for name, values in additional.items():
            if isinstance(values, (str, bytes)):
                raise TypeError(
                    f"Form parameter '{name}' must be a sequence of strings, "
                    f"not a bare string (use [{values!r}])"
                )
            merged.setdefault(name, []).extend(values)
    return merged


class OAuth2Operations(Protocol):
    """The operations a caller needs to drive an OAuth2 "connect" flow."""

    def build_authorize_url(
        self, grant_type: GrantType, parameters: OAuth2Parameters
    ) -> str: ...

    def build_authenticate_url(
        self, grant_type: GrantType, parameters: OAuth2Parameters
    ) -> str: ...

    def exchange_for_access(
        self,
        authorization_code: str,
        redirect_uri: str,
        additional_parameters: Optional[FormData] = None,
    ) -> AccessGrant: ...

    def refresh_access(
        self,
        refresh_token: str,
        scope: Optional[str] = None,
        additional_parameters: Optional[FormData] = None,
    ) -> AccessGrant: ...


class OAuth2Template:
    """OAuth2 client bound to one provider and one client id.

    Configuration is fixed at construction and exposed read-only. The
    instance holds no per-call state, so it may be shared across threads as
    long as the submitter is thread-safe (the default one is).

    Args:
        client_id: The application's client id.
        client_secret: The application's client secret.
        authorize_url: The provider's authorize endpoint.
        access_token_url: The provider's token endpoint.
        authenticate_url: Optional separate sign-in endpoint. When ``None``,
            :meth:`build_authenticate_url` uses *authorize_url*.
        submitter: Performs token endpoint POSTs. Defaults to
            :func:`~authgrant.transport.create_default_submitter`.
        grant_factory: Builds the returned grant from the token response.
        request_config: Timeout and TLS settings for the default submitter.
            Ignored when *submitter* is given.

    Raises:
        ConfigError: If the client id, client secret, authorize URL, or
            access token URL is empty.

    Example::

        template = OAuth2Template(
            "my-client",
            "s3cret",
            authorize_url="https://provider.example/oauth/authorize",
            access_token_url="https://provider.example/oauth/token",
        )
        url = template.build_authorize_url(
            GrantType.AUTHORIZATION_CODE,
            OAuth2Parameters(redirect_uri="https://app.example/cb", state="xyz"),
        )
        # ... user is redirected back with ?code=...
        grant = template.exchange_for_access(code, "https://app.example/cb")
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        authorize_url: str,
        access_token_url: str,
        authenticate_url: Optional[str] = None,
        *,
        submitter: Optional[FormSubmitter] = None,
        grant_factory: GrantFactory = default_grant_factory,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        missing = [
            name
            for name, value in (
                ("client_id", client_id),
                ("client_secret", client_secret),
                ("authorize_url", authorize_url),
                ("access_token_url", access_token_url),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"OAuth2 client requires {', '.join(missing)}")

        self._client_id = client_id
        self._client_secret = client_secret
        self._access_token_url = access_token_url
        self._authorize_url = client_base_url(authorize_url, client_id)
        self._authenticate_url = (
            client_base_url(authenticate_url, client_id) if authenticate_url else None
        )
        self._owns_submitter = submitter is None
        self._submitter = (
            submitter if submitter is not None else create_default_submitter(request_config)
        )
        self._grant_factory = grant_factory

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        *,
        submitter: Optional[FormSubmitter] = None,
        grant_factory: GrantFactory = default_grant_factory,
    ) -> OAuth2Template:
        """Build a template from a :class:`~authgrant.models.ProviderConfig`.

        Credential sources are resolved immediately, so a missing
        environment variable or secret file fails here rather than on the
        first exchange.

        Raises:
            ConfigError: If a credential source cannot be resolved or a
                required value is empty.
        """
        client_id = resolve_credential(config.client_id_source)
        client_secret = resolve_credential(config.client_secret_source)
        return cls(
            client_id,
            client_secret,
            authorize_url=config.authorize_url,
            access_token_url=config.access_token_url,
            authenticate_url=config.authenticate_url,
            submitter=submitter,
            grant_factory=grant_factory,
            request_config=config.request,
        )

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def access_token_url(self) -> str:
        return self._access_token_url

    @property
    def submitter(self) -> FormSubmitter:
        """The submitter performing token endpoint POSTs."""
        return self._submitter

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> OAuth2Template:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the submitter if this template created it.

        An injected submitter stays open; it belongs to the caller.
        """
        if self._owns_submitter:
            close = getattr(self._submitter, "close", None)
            if close is not None:
                close()

    # ------------------------------------------------------------------ #
    # Redirect URLs
    # ------------------------------------------------------------------ #

    def build_authorize_url(
        self, grant_type: GrantType, parameters: OAuth2Parameters
    ) -> str:
        """Return the URL to send the user to for authorization."""
        return build_auth_url(self._authorize_url, grant_type, parameters)

    def build_authenticate_url(
        self, grant_type: GrantType, parameters: OAuth2Parameters
    ) -> str:
        """Return the URL to send the user to for sign-in.

        Providers without a distinct authenticate endpoint get exactly the
        :meth:`build_authorize_url` result.
        """
        if self._authenticate_url is None:
            return self.build_authorize_url(grant_type, parameters)
        return build_auth_url(self._authenticate_url, grant_type, parameters)

    # ------------------------------------------------------------------ #
    # Token exchanges
    # ------------------------------------------------------------------ #

    def exchange_for_access(
        self,
        authorization_code: str,
        redirect_uri: str,
        additional_parameters: Optional[FormData] = None,
    ) -> AccessGrant:
        """Exchange an authorization code for an access grant.

        Args:
            authorization_code: The ``code`` received on the callback.
            redirect_uri: The redirect URI used in the authorize request.
            additional_parameters: Extra form fields. Values are appended
                to, not substituted for, the standard fields.

        Returns:
            The grant built by the configured grant factory.

        Raises:
            ExchangeError: If the token endpoint fails, returns an
                unparseable body, or omits ``access_token``.
        """
        form = {
            "client_id": [self._client_id],
            "client_secret": [self._client_secret],
            "code": [authorization_code],
            "redirect_uri": [redirect_uri],
            "grant_type": ["authorization_code"],
        }
        logger.debug("Exchanging authorization code at %s", self._access_token_url)
        return self._post_for_access_grant(merge_form(form, additional_parameters))

    def refresh_access(
        self,
        refresh_token: str,
        scope: Optional[str] = None,
        additional_parameters: Optional[FormData] = None,
    ) -> AccessGrant:
        """Exchange a refresh token for a new access grant.

        Args:
            refresh_token: The refresh token from an earlier grant.
            scope: Narrower scope to request. Omitted from the request when
                ``None``.
            additional_parameters: Extra form fields, appended as in
                :meth:`exchange_for_access`.

        Raises:
            ExchangeError: If the token endpoint fails, returns an
                unparseable body, or omits ``access_token``.
        """
        form = {
            "client_id": [self._client_id],
            "client_secret": [self._client_secret],
            "refresh_token": [refresh_token],
        }
        if scope is not None:
            form["scope"] = [scope]
        form["grant_type"] = ["refresh_token"]
        logger.debug("Refreshing access token at %s", self._access_token_url)
        return self._post_for_access_grant(merge_form(form, additional_parameters))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _post_for_access_grant(self, form: FormData) -> AccessGrant:
        result = self._submitter.submit_form(self._access_token_url, form)
        return self._extract_access_grant(result)

    def _extract_access_grant(self, result: Mapping[str, Any]) -> AccessGrant:
        """Pull the four standard token fields out of *result*.

        Some providers answer a failed exchange with a 2xx status and an
        OAuth2 error body; that becomes an :class:`ExchangeError` carrying
        the provider's ``error`` and ``error_description``.
        """
        access_token = result.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            error, description = extract_oauth_error(result)
            msg = "Token response missing 'access_token' field"
            if error:
                msg = f"{msg}: {error}"
                if description:
                    msg = f"{msg} - {description}"
            logger.warning("%s", msg)
            raise ExchangeError(msg, error=error, error_description=description)

        return self._grant_factory(
            access_token,
            _scope_value(result.get("scope")),
            _optional_str("refresh_token", result.get("refresh_token")),
            _optional_int(result.get("expires_in")),
            result,
        )


def _optional_str(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ExchangeError(f"Invalid '{name}' value in token response: {value!r}")
    return value


def _scope_value(value: Any) -> Optional[str]:
    """Normalize ``scope``; some providers send a list instead of a string."""
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return " ".join(value)
    return _optional_str("scope", value)


def _optional_int(value: Any) -> Optional[int]:
    """Coerce ``expires_in`` to seconds; providers send ints or numeric strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ExchangeError(f"Invalid 'expires_in' value in token response: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ExchangeError(
                f"Invalid 'expires_in' value in token response: {value!r}"
            )
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ExchangeError(
            f"Invalid 'expires_in' value in token response: {value!r}"
        ) from exc
