"""Public models for fetchwrap.

Example:
    from fetchwrap.models import EndpointConfig, GlobalConfig

    config = GlobalConfig(base_url="https://api.example.com", retry=True, retry_count=2)
    endpoint = EndpointConfig(path="users", method="GET")
"""

from fetchwrap.models.config import (
    CallConfig,
    CredentialsPolicy,
    EffectiveRequestConfig,
    EndpointConfig,
    GlobalConfig,
    RequestOptions,
    ResponseType,
    StatusValidator,
    Transformer,
)
from fetchwrap.models.response import ExchangeResult, Response

__all__ = [
    "GlobalConfig",
    "RequestOptions",
    "EndpointConfig",
    "CallConfig",
    "EffectiveRequestConfig",
    "ExchangeResult",
    "Response",
    "CredentialsPolicy",
    "ResponseType",
    "StatusValidator",
    "Transformer",
]
