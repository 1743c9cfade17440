"""Shared test fixtures for authgrant.

Provides a recording stand-in for the form-submission capability and a
template wired to it, so exchange tests never touch the network.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from authgrant.exceptions import ExchangeError
from authgrant.template import OAuth2Template


AUTHORIZE_URL = "https://provider.example/oauth/authorize"
TOKEN_URL = "https://provider.example/oauth/token"


class StubSubmitter:
    """Records every submitted form and replies with a canned body or error."""

    def __init__(
        self,
        response: dict[str, Any] | None = None,
        error: ExchangeError | None = None,
    ) -> None:
        self.response = response if response is not None else {"access_token": "TOK"}
        self.error = error
        self.calls: list[tuple[str, dict[str, list[str]]]] = []

    def submit_form(
        self, url: str, form: Mapping[str, Sequence[str]]
    ) -> dict[str, Any]:
        self.calls.append((url, {k: list(v) for k, v in form.items()}))
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last_form(self) -> dict[str, list[str]]:
        return self.calls[-1][1]


@pytest.fixture
def submitter() -> StubSubmitter:
    return StubSubmitter()


@pytest.fixture
def template(submitter: StubSubmitter) -> OAuth2Template:
    """Template for client ``client-1`` without an authenticate endpoint."""
    return OAuth2Template(
        "client-1",
        "secret-1",
        authorize_url=AUTHORIZE_URL,
        access_token_url=TOKEN_URL,
        submitter=submitter,
    )
