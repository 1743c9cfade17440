"""authgrant -- OAuth2 client-side protocol helper.

Builds authorize/authenticate redirect URLs for the Authorization Code and
Implicit grant types, and performs the token endpoint exchanges
(authorization code for token, refresh token for token), returning a
normalized :class:`AccessGrant`.

Typical usage::

    from authgrant import GrantType, OAuth2Parameters, OAuth2Template

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
    grant = template.exchange_for_access(code, "https://app.example/cb")

Modules:
    models: Pydantic models for parameters, grants, and provider config.
    encoding: Form encoding and redirect URL construction.
    transport: Form-submission capability and its httpx implementation.
    template: The OAuth2 client.
    config: Provider config loading and credential resolution.
    exceptions: Exception hierarchy.
"""

from authgrant.exceptions import AuthgrantError, ConfigError, EncodingError, ExchangeError
from authgrant.models import (
    AccessGrant,
    GrantType,
    OAuth2Parameters,
    ProviderConfig,
    RequestConfig,
)
from authgrant.template import (
    GrantFactory,
    OAuth2Operations,
    OAuth2Template,
    default_grant_factory,
)
from authgrant.transport import FormSubmitter, HttpxFormSubmitter

__version__ = "0.1.0"

__all__ = [
    "AccessGrant",
    "AuthgrantError",
    "ConfigError",
    "EncodingError",
    "ExchangeError",
    "FormSubmitter",
    "GrantFactory",
    "GrantType",
    "HttpxFormSubmitter",
    "OAuth2Operations",
    "OAuth2Parameters",
    "OAuth2Template",
    "ProviderConfig",
    "RequestConfig",
    "default_grant_factory",
]
