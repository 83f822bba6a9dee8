"""fetchwrap: declarative endpoints over an async request-execution engine.

This package resolves layered configuration, runs interceptor and
transformer pipelines, bounds each exchange with a timeout, retries
timeouts and failures independently, and cancels repeated in-flight calls.

Public API:
    create_service / Service - Build a service from an endpoint map
    models - Configuration and response models
    exceptions - Error hierarchy
    transformers - Stock request/response transformers
    status - Status helpers and error classifiers
"""

from fetchwrap._internal.join import join_all, race
from fetchwrap._version import __version__
from fetchwrap.client import Endpoint, RequestHandle, Service, create_service
from fetchwrap.exceptions import (
    BuildError,
    FetchwrapConfigError,
    FetchwrapError,
    NetworkError,
    RequestAbortedError,
    RequestError,
    RequestSupersededError,
    RequestTimeoutError,
    StatusValidationError,
)
from fetchwrap.models import (
    CallConfig,
    EffectiveRequestConfig,
    EndpointConfig,
    ExchangeResult,
    GlobalConfig,
    Response,
)

__all__ = [
    "__version__",
    "create_service",
    "Service",
    "Endpoint",
    "RequestHandle",
    "join_all",
    "race",
    "GlobalConfig",
    "EndpointConfig",
    "CallConfig",
    "EffectiveRequestConfig",
    "ExchangeResult",
    "Response",
    "FetchwrapError",
    "FetchwrapConfigError",
    "RequestError",
    "BuildError",
    "RequestTimeoutError",
    "NetworkError",
    "StatusValidationError",
    "RequestAbortedError",
    "RequestSupersededError",
]
