"""HTTP form submission for token endpoint requests.

:class:`~authgrant.template.OAuth2Template` never talks to :mod:`httpx`
directly. It depends on the :class:`FormSubmitter` protocol, a single
operation that POSTs a form-encoded body and returns the parsed key/value
response. :class:`HttpxFormSubmitter` is the default implementation.

Swap in a different submitter to change message formats or transport
settings (TLS trust, proxies, timeouts) while keeping the protocol logic.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Protocol, runtime_checkable
from urllib.parse import parse_qsl

import httpx

from authgrant.exceptions import ExchangeError
from authgrant.models import RequestConfig

logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "text/plain")


@runtime_checkable
class FormSubmitter(Protocol):
    """Capability to POST a form and receive a parsed key/value body.

    Implementations must be safe for concurrent use, since one submitter is
    shared by every exchange a client performs.
    """

    def submit_form(
        self, url: str, form: Mapping[str, Sequence[str]]
    ) -> dict[str, Any]:
        """POST *form* to *url* and return the parsed response body.

        Raises:
            ExchangeError: On a non-2xx status, a transport failure, or a
                body that is not a key/value structure.
        """
        ...


class HttpxFormSubmitter:
    """Default :class:`FormSubmitter` built on :class:`httpx.Client`.

    Understands JSON object responses as well as ``key=value&...`` bodies,
    which some providers still return from their token endpoints.

    Args:
        client: Client to send requests with. When ``None`` a new client is
            created from *request_config* and owned by this submitter.
        request_config: Timeout and TLS settings for an owned client.
            Ignored when *client* is given.

    Example::

        with HttpxFormSubmitter() as submitter:
            body = submitter.submit_form(
                "https://example.com/oauth/token",
                {"grant_type": ["refresh_token"], "refresh_token": ["r1"]},
            )
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        if client is None:
            config = request_config or RequestConfig()
            client = httpx.Client(timeout=config.timeout, verify=config.verify_ssl)
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """The underlying :class:`httpx.Client`."""
        return self._client

    def __enter__(self) -> HttpxFormSubmitter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying client if this submitter created it."""
        if self._owns_client:
            self._client.close()

    def submit_form(
        self, url: str, form: Mapping[str, Sequence[str]]
    ) -> dict[str, Any]:
        """POST *form* as ``application/x-www-form-urlencoded``.

        Multi-valued fields are sent as repeated keys in their given order.

        Raises:
            ExchangeError: On a non-2xx status, a network or timeout error,
                or a body that cannot be parsed into a mapping.
        """
        data = {name: list(values) for name, values in form.items()}
        logger.debug("POST %s (fields: %s)", url, ", ".join(data))

        try:
            response = self._client.post(
                url,
                data=data,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _status_error(exc.response) from exc
        except httpx.HTTPError as exc:
            logger.warning("Token request to %s failed: %s", url, exc)
            raise ExchangeError(f"Token request failed: {exc}") from exc

        return parse_token_response(response)


def parse_token_response(response: httpx.Response) -> dict[str, Any]:
    """Parse a token endpoint response body into a dict.

    JSON is tried first. Bodies that are not JSON but are served as
    form-encoded or plain text are parsed as ``key=value`` pairs.

    Raises:
        ExchangeError: If the body is neither a JSON object nor a
            ``key=value`` string.
    """
    content_type = response.headers.get("content-type", "").split(";")[0].strip()
    text = response.text

    try:
        body = json.loads(text)
    except ValueError as exc:
        if content_type in _FORM_CONTENT_TYPES and "=" in text:
            return dict(parse_qsl(text, keep_blank_values=True))
        raise ExchangeError(
            f"Token response is not parseable (content type {content_type or 'unknown'})",
            status_code=response.status_code,
            body=text,
        ) from exc

    if not isinstance(body, dict):
        raise ExchangeError(
            "Token response is not a JSON object",
            status_code=response.status_code,
            body=text,
        )
    return body


def create_default_submitter(
    request_config: Optional[RequestConfig] = None,
) -> HttpxFormSubmitter:
    """Return the submitter used when a client is not given one."""
    return HttpxFormSubmitter(request_config=request_config)


def extract_oauth_error(body: Mapping[str, Any]) -> tuple[Optional[str], Optional[str]]:
    """Return the OAuth2 ``(error, error_description)`` fields of *body*.

    Either item is ``None`` when missing or not a string.
    """
    error = body.get("error")
    description = body.get("error_description")
    return (
        error if isinstance(error, str) else None,
        description if isinstance(description, str) else None,
    )


def _status_error(response: httpx.Response) -> ExchangeError:
    """Build an :class:`ExchangeError` from a non-2xx token endpoint response.

    Error bodies are parsed the same way as successful ones, so JSON and
    form-encoded OAuth2 error payloads both surface their ``error`` field.
    """
    status = response.status_code
    error: Optional[str] = None
    description: Optional[str] = None

    try:
        detail = parse_token_response(response)
    except ExchangeError:
        detail = None
    if detail is not None:
        error, description = extract_oauth_error(detail)

    msg = f"Token endpoint returned HTTP {status}"
    if error:
        msg = f"{msg}: {error}"
        if description:
            msg = f"{msg} - {description}"

    logger.warning("%s", msg)
    return ExchangeError(
        msg,
        status_code=status,
        body=response.text,
        error=error,
        error_description=description,
    )
