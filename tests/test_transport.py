"""Tests for the httpx-backed form submitter."""

from __future__ import annotations

from typing import Callable
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qsl

import httpx
import pytest

from authgrant.exceptions import ExchangeError
from authgrant.models import RequestConfig
from authgrant.template import OAuth2Template
from authgrant.transport import (
    FormSubmitter,
    HttpxFormSubmitter,
    create_default_submitter,
    parse_token_response,
)


TOKEN_URL = "https://provider.example/oauth/token"


def _submitter(handler: Callable[[httpx.Request], httpx.Response]) -> HttpxFormSubmitter:
    return HttpxFormSubmitter(client=httpx.Client(transport=httpx.MockTransport(handler)))


def _recording_handler(
    response: httpx.Response,
) -> tuple[list[httpx.Request], Callable[[httpx.Request], httpx.Response]]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return response

    return seen, handler


class TestHttpxFormSubmitter:
    def test_is_a_form_submitter(self) -> None:
        with HttpxFormSubmitter() as submitter:
            assert isinstance(submitter, FormSubmitter)

    def test_posts_form_encoded_body(self) -> None:
        seen, handler = _recording_handler(
            httpx.Response(200, json={"access_token": "TOK"})
        )
        submitter = _submitter(handler)

        body = submitter.submit_form(
            TOKEN_URL,
            {"grant_type": ["refresh_token"], "scope": ["a b"], "x": ["1", "2"]},
        )

        assert body == {"access_token": "TOK"}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_URL
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["accept"] == "application/json"
        assert parse_qsl(request.content.decode()) == [
            ("grant_type", "refresh_token"),
            ("scope", "a b"),
            ("x", "1"),
            ("x", "2"),
        ]

    def test_form_encoded_response(self) -> None:
        _, handler = _recording_handler(
            httpx.Response(
                200,
                text="access_token=TOK&expires=5108&scope=user%2Crepo",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
        )
        body = _submitter(handler).submit_form(TOKEN_URL, {})
        assert body == {"access_token": "TOK", "expires": "5108", "scope": "user,repo"}

    def test_plain_text_json_response(self) -> None:
        _, handler = _recording_handler(
            httpx.Response(
                200,
                text='{"access_token": "TOK"}',
                headers={"content-type": "text/plain; charset=utf-8"},
            )
        )
        assert _submitter(handler).submit_form(TOKEN_URL, {}) == {"access_token": "TOK"}

    def test_oauth_error_response(self) -> None:
        _, handler = _recording_handler(
            httpx.Response(
                400,
                json={
                    "error": "invalid_grant",
                    "error_description": "Code was already redeemed.",
                },
            )
        )
        with pytest.raises(ExchangeError) as exc_info:
            _submitter(handler).submit_form(TOKEN_URL, {"code": ["c"]})

        exc = exc_info.value
        assert exc.status_code == 400
        assert exc.error == "invalid_grant"
        assert exc.error_description == "Code was already redeemed."
        assert "invalid_grant" in str(exc)
        assert exc.body is not None and "invalid_grant" in exc.body

    def test_form_encoded_error_response(self) -> None:
        _, handler = _recording_handler(
            httpx.Response(
                400,
                text="error=invalid_grant&error_description=Code+expired",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
        )
        with pytest.raises(ExchangeError) as exc_info:
            _submitter(handler).submit_form(TOKEN_URL, {"code": ["c"]})

        exc = exc_info.value
        assert exc.status_code == 400
        assert exc.error == "invalid_grant"
        assert exc.error_description == "Code expired"

    def test_non_json_error_response(self) -> None:
        _, handler = _recording_handler(httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(ExchangeError) as exc_info:
            _submitter(handler).submit_form(TOKEN_URL, {})
        assert exc_info.value.status_code == 502
        assert exc_info.value.body == "Bad Gateway"
        assert exc_info.value.error is None

    def test_unparseable_success_body(self) -> None:
        _, handler = _recording_handler(
            httpx.Response(200, text="<html>oops</html>", headers={"content-type": "text/html"})
        )
        with pytest.raises(ExchangeError, match="not parseable"):
            _submitter(handler).submit_form(TOKEN_URL, {})

    def test_json_array_body(self) -> None:
        _, handler = _recording_handler(httpx.Response(200, json=["access_token"]))
        with pytest.raises(ExchangeError, match="not a JSON object"):
            _submitter(handler).submit_form(TOKEN_URL, {})

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExchangeError, match="Token request failed") as exc_info:
            _submitter(handler).submit_form(TOKEN_URL, {})
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_close_leaves_injected_client_open(self) -> None:
        client = MagicMock(spec=httpx.Client)
        HttpxFormSubmitter(client=client).close()
        client.close.assert_not_called()

    def test_close_owned_client(self) -> None:
        with patch("authgrant.transport.httpx.Client") as client_cls:
            with HttpxFormSubmitter():
                pass
        client_cls.return_value.close.assert_called_once()


class TestCreateDefaultSubmitter:
    def test_applies_request_config(self) -> None:
        with patch("authgrant.transport.httpx.Client") as client_cls:
            submitter = create_default_submitter(RequestConfig(timeout=5, verify_ssl=False))
        client_cls.assert_called_once_with(timeout=5.0, verify=False)
        assert submitter.client is client_cls.return_value


class TestParseTokenResponse:
    def test_empty_form_body_raises(self) -> None:
        response = httpx.Response(
            200, text="", headers={"content-type": "application/x-www-form-urlencoded"}
        )
        with pytest.raises(ExchangeError):
            parse_token_response(response)


class TestEndToEnd:
    def test_exchange_through_httpx(self) -> None:
        seen, handler = _recording_handler(
            httpx.Response(200, json={"access_token": "TOK", "expires_in": 3600})
        )
        template = OAuth2Template(
            "client-1",
            "secret-1",
            authorize_url="https://provider.example/oauth/authorize",
            access_token_url=TOKEN_URL,
            submitter=_submitter(handler),
        )

        grant = template.exchange_for_access("AUTHCODE123", "https://app.example/cb")

        assert grant.access_token == "TOK"
        assert grant.expires_in == 3600
        assert dict(parse_qsl(seen[0].content.decode())) == {
            "client_id": "client-1",
            "client_secret": "secret-1",
            "code": "AUTHCODE123",
            "redirect_uri": "https://app.example/cb",
            "grant_type": "authorization_code",
        }

    @pytest.mark.parametrize("operation", ["exchange", "refresh"])
    def test_non_2xx_never_returns_grant(self, operation: str) -> None:
        _, handler = _recording_handler(
            httpx.Response(401, json={"error": "invalid_client"})
        )
        template = OAuth2Template(
            "client-1",
            "secret-1",
            authorize_url="https://provider.example/oauth/authorize",
            access_token_url=TOKEN_URL,
            submitter=_submitter(handler),
        )
        with pytest.raises(ExchangeError) as exc_info:
            if operation == "exchange":
                template.exchange_for_access("c", "https://app.example/cb")
            else:
                template.refresh_access("r")
        assert exc_info.value.error == "invalid_client"

    def test_form_encoded_error_with_success_status(self) -> None:
        _, handler = _recording_handler(
            httpx.Response(
                200,
                text="error=bad_verification_code&error_description=The+code+is+expired.",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
        )
        template = OAuth2Template(
            "client-1",
            "secret-1",
            authorize_url="https://provider.example/oauth/authorize",
            access_token_url=TOKEN_URL,
            submitter=_submitter(handler),
        )
        with pytest.raises(ExchangeError) as exc_info:
            template.exchange_for_access("stale", "https://app.example/cb")

        assert exc_info.value.error == "bad_verification_code"
        assert exc_info.value.error_description == "The code is expired."
