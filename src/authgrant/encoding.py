"""Form encoding and authorize URL construction.

Everything here is pure: no I/O and no shared state, so the functions are
safe to call from any number of threads.

Values are encoded with the ``application/x-www-form-urlencoded`` rules
(UTF-8 bytes, space as ``+``), the same rules :mod:`httpx` applies to
token request bodies.
"""

from __future__ import annotations

from urllib.parse import quote_plus

from authgrant.exceptions import EncodingError
from authgrant.models import GrantType, OAuth2Parameters


def form_encode(value: str) -> str:
    """Percent-encode *value* for a query string or form body.

    Raises:
        EncodingError: If *value* is not valid text (e.g. lone surrogates).
    """
    try:
        return quote_plus(value, safe="", encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"Cannot UTF-8 encode value: {exc}") from exc


def client_base_url(url: str, client_id: str) -> str:
    """Return *url* with ``client_id`` appended as a query parameter."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}client_id={form_encode(client_id)}"


def build_auth_url(
    base_url: str,
    grant_type: GrantType,
    parameters: OAuth2Parameters,
) -> str:
    """Build a redirect URL for the authorize or authenticate endpoint.

    Parameters are appended in a fixed order: ``redirect_uri``,
    ``response_type``, ``scope``, ``state``, then every additional parameter
    in insertion order. Multi-valued additional parameters produce repeated
    keys.

    Args:
        base_url: Endpoint URL already carrying the ``client_id`` parameter
            (see :func:`client_base_url`).
        grant_type: Selects ``response_type=code`` or ``response_type=token``.
        parameters: Redirect URI, scope, state, and extra parameters.

    Returns:
        The fully encoded URL to send the user to.

    Raises:
        ValueError: If *grant_type* is not a known :class:`GrantType`.

    Example::

        >>> build_auth_url(
        ...     "https://example.com/auth?client_id=abc",
        ...     GrantType.AUTHORIZATION_CODE,
        ...     OAuth2Parameters(redirect_uri="https://app.example/cb"),
        ... )
        'https://example.com/auth?client_id=abc&redirect_uri=https%3A%2F%2Fapp.example%2Fcb&response_type=code'
    """
    if not isinstance(grant_type, GrantType):
        raise ValueError(f"Unsupported grant type: {grant_type!r}")

    parts = [base_url]
    parts.append(f"&redirect_uri={form_encode(parameters.redirect_uri)}")
    parts.append(f"&response_type={grant_type.response_type}")
    if parameters.scope is not None:
        parts.append(f"&scope={form_encode(parameters.scope)}")
    if parameters.state is not None:
        parts.append(f"&state={form_encode(parameters.state)}")
    for name, values in parameters.additional_parameters.items():
        encoded_name = form_encode(name)
        for value in values:
            parts.append(f"&{encoded_name}={form_encode(value)}")
    return "".join(parts)
