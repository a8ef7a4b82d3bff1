"""Errors raised by the site API client.

Every error remembers the request that failed, so a message such as
``POST /affiliates failed with HTTP 500: Database error`` points at the
collaborator call that broke the step.
"""

from typing import Any, Dict, Optional


class ServiceAPIError(Exception):
    """A request to the site API failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
        method: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        """Initialize service API error.

        Args:
            message: Error message
            status_code: HTTP status code, None for network failures
            response_data: Decoded error body
            method: HTTP method of the failed request
            endpoint: API endpoint of the failed request
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        self.method = method
        self.endpoint = endpoint

    @property
    def request(self) -> Optional[str]:
        """The failed request as ``METHOD /endpoint``."""
        if not self.endpoint:
            return None
        return f'{self.method or "GET"} {self.endpoint}'

    @property
    def retryable(self) -> bool:
        """Whether sending the same request again later may succeed.

        Network failures, rate limits and server errors are transient. A
        retried insert may still create a duplicate affiliate, so callers
        re-running a step want ``guard_duplicates`` on.
        """
        return self.status_code is None or self.status_code >= 500

    def __str__(self) -> str:
        if self.request:
            return f'{self.request}: {self.message}'
        return self.message


class ServiceAuthenticationError(ServiceAPIError):
    """The API token was missing or rejected."""

    @property
    def retryable(self) -> bool:
        return False


class ServicePermissionError(ServiceAPIError):
    """The token's user may not call this endpoint."""

    @property
    def retryable(self) -> bool:
        return False


class ServiceNotFoundError(ServiceAPIError):
    """The endpoint does not exist on the site."""

    @property
    def retryable(self) -> bool:
        return False


class ServiceRateLimitError(ServiceAPIError):
    """The site asked the client to slow down."""

    def __init__(self, message: str, retry_after: int = 60, **kwargs):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retry
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return True


STATUS_ERRORS = {
    401: (ServiceAuthenticationError, 'Authentication failed'),
    403: (ServicePermissionError, 'Permission denied'),
    404: (ServiceNotFoundError, 'Endpoint not found'),
}


def error_for_status(
    status_code: int,
    method: str,
    endpoint: str,
    response_data: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
    text: str = '',
) -> ServiceAPIError:
    """Build the error for a failed response.

    Args:
        status_code: HTTP status code, 400 or above
        method: HTTP method of the request
        endpoint: API endpoint of the request
        response_data: Decoded JSON body, if any
        headers: Response headers
        text: Raw body, used when the body is not JSON

    Returns:
        The matching ``ServiceAPIError`` subclass instance
    """
    context = {
        'status_code': status_code,
        'response_data': response_data,
        'method': method,
        'endpoint': endpoint,
    }

    if status_code == 429:
        retry_after = int((headers or {}).get('Retry-After', 60))
        return ServiceRateLimitError(
            f'Rate limit exceeded. Retry after {retry_after} seconds',
            retry_after=retry_after,
            **context,
        )

    if status_code in STATUS_ERRORS:
        error_class, message = STATUS_ERRORS[status_code]
        return error_class(message, **context)

    if isinstance(response_data, dict) and response_data.get('message'):
        message = f'HTTP {status_code}: {response_data["message"]}'
    else:
        message = f'HTTP {status_code}: {text}' if text else f'HTTP {status_code}'
    return ServiceAPIError(f'API request failed with {message}', **context)
