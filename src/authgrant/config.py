"""Provider configuration loading and credential resolution.

* :func:`load_provider_config` validates a plain mapping (e.g. parsed from
  the application's own settings file) into a
  :class:`~authgrant.models.ProviderConfig`.
* :func:`resolve_credential` reads a client id or secret from the source
  descriptor named in that config.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from authgrant.exceptions import ConfigError
from authgrant.models import ProviderConfig


def load_provider_config(data: Mapping[str, Any]) -> ProviderConfig:
    """Validate *data* into a :class:`~authgrant.models.ProviderConfig`.

    Raises:
        ConfigError: If required keys are missing, a value has the wrong
            type, or an unknown key is present.
    """
    try:
        return ProviderConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigError(f"Invalid OAuth2 provider config: {exc}") from exc


def resolve_credential(source: str) -> str:
    """Read a client id or client secret named by a provider config.

    ``ProviderConfig.client_id_source`` and ``client_secret_source`` hold
    one of two descriptors:

    - ``env:NAME`` -- the value of environment variable ``NAME``;
    - ``file:PATH`` -- the contents of ``PATH`` (``~`` expanded), with
      surrounding whitespace such as a trailing newline removed.

    Raises:
        ConfigError: If the variable is unset, the file is missing or
            unreadable, or the descriptor uses another scheme.
    """
    scheme, _, target = source.partition(":")

    if scheme == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Credential variable '{target}' is not set ({source})")
        return value

    if scheme == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} ({source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(
        f"Unknown credential source '{source}'. Use env:VAR or file:/path"
    )
