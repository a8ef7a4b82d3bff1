"""REST client for the site services backing a migration."""

from .client import APIResponse, ServiceClient, ServiceClientFactory
from .exceptions import (
    ServiceAPIError,
    ServiceAuthenticationError,
    ServiceNotFoundError,
    ServicePermissionError,
    ServiceRateLimitError,
    error_for_status,
)

__all__ = [
    'APIResponse',
    'ServiceClient',
    'ServiceClientFactory',
    'ServiceAPIError',
    'ServiceAuthenticationError',
    'ServiceNotFoundError',
    'ServicePermissionError',
    'ServiceRateLimitError',
    'error_for_status',
]
