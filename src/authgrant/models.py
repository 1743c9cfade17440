"""Pydantic models shared across all authgrant modules.

**Protocol models** -- what callers hand in and get back:
    :class:`GrantType`, :class:`OAuth2Parameters`, and :class:`AccessGrant`.

**Configuration models** -- describe one OAuth2 provider integration:
    :class:`RequestConfig` and :class:`ProviderConfig`.

Protocol models are frozen. A value is built once per authorization attempt
or token exchange and never mutated afterwards.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Protocol models ---


class GrantType(str, enum.Enum):
    """OAuth2 flow variant used to obtain a token.

    Selects the ``response_type`` value embedded in the authorize URL.
    """

    AUTHORIZATION_CODE = "authorization_code"
    IMPLICIT_GRANT = "implicit_grant"

    @property
    def response_type(self) -> str:
        """Return the ``response_type`` query value for this grant type."""
        if self is GrantType.AUTHORIZATION_CODE:
            return "code"
        if self is GrantType.IMPLICIT_GRANT:
            return "token"
        raise ValueError(f"Unsupported grant type: {self!r}")


class OAuth2Parameters(BaseModel):
    """Parameters for building an authorize or authenticate redirect URL.

    Used only for URL construction, never for token exchange. Keys in
    ``additional_parameters`` must not redefine ``client_id``,
    ``redirect_uri``, ``response_type``, ``scope``, or ``state``; this is
    not checked.

    Example::

        OAuth2Parameters(
            redirect_uri="https://app.example/cb",
            scope="read write",
            state="k3j4h5",
            additional_parameters={"display": ["popup"]},
        )
    """

    model_config = ConfigDict(frozen=True)

    redirect_uri: str = Field(description="Where the provider sends the user back")
    scope: Optional[str] = Field(
        default=None, description="Space-separated scopes to request"
    )
    state: Optional[str] = Field(
        default=None, description="Opaque value round-tripped by the provider"
    )
    additional_parameters: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Extra query parameters; each value becomes a repeated key",
    )


class AccessGrant(BaseModel):
    """Normalized result of a token exchange.

    ``expires_in`` is ``None`` when the provider did not say when the token
    expires. Provider-specific grant factories may return subclasses carrying
    extra fields from the token response.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(min_length=1)
    scope: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = Field(
        default=None, description="Lifetime of the access token in seconds"
    )


# --- Configuration models ---


class RequestConfig(BaseModel):
    """HTTP settings for the default token endpoint transport."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class ProviderConfig(BaseModel):
    """Configuration of one OAuth2 provider integration.

    Client credentials are given as source descriptors (``env:VAR`` or
    ``file:/path``) and resolved by
    :func:`~authgrant.config.resolve_credential` so that secrets never need
    to live in the configuration itself.

    Example::

        ProviderConfig(
            client_id_source="env:GITHUB_CLIENT_ID",
            client_secret_source="file:~/.secrets/github",
            authorize_url="https://github.com/login/oauth/authorize",
            access_token_url="https://github.com/login/oauth/access_token",
        )
    """

    model_config = ConfigDict(extra="forbid")

    client_id_source: str
    client_secret_source: str
    authorize_url: str
    access_token_url: str
    authenticate_url: Optional[str] = Field(
        default=None,
        description="Separate sign-in endpoint; falls back to authorize_url",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
