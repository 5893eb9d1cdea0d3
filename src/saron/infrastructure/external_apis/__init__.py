"""External API clients."""

from saron.infrastructure.external_apis.dapic_client import (
    AuthenticationError,
    ConfigurationError,
    DapicAPIClient,
    DapicAPIError,
    TransportError,
)
from saron.infrastructure.external_apis.pagination import FanOutMode, FanOutResult, PagePolicy

__all__ = [
    "DapicAPIClient",
    "DapicAPIError",
    "ConfigurationError",
    "AuthenticationError",
    "TransportError",
    "FanOutMode",
    "FanOutResult",
    "PagePolicy",
]
