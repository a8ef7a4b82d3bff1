"""Site API client implementation."""

from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests
from loguru import logger
from pydantic import BaseModel

from ..config.config import ServiceConfig
from .exceptions import ServiceAPIError, ServiceAuthenticationError, error_for_status


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool


class ServiceClient:
    """Site API client with token authentication."""

    def __init__(self, config: ServiceConfig):
        """Initialize service client.

        Args:
            config: Site API configuration
        """
        self.config = config
        self.base_url = config.url.rstrip('/')
        self.session = requests.Session()

        if not config.token:
            raise ServiceAuthenticationError('No authentication token provided')

        self.session.headers.update(
            {
                'Authorization': f'Bearer {config.token}',
                'Content-Type': 'application/json',
                'User-Agent': 'affiliate-migrate/0.1.0',
            }
        )

        logger.info(f'Initialized service client for {config.url}')

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    def _handle_response(
        self, response: requests.Response, method: str, endpoint: str
    ) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response
            method: HTTP method of the request
            endpoint: API endpoint of the request

        Returns:
            Standardized API response

        Raises:
            ServiceAPIError: For various API errors
        """
        headers = dict(response.headers)

        if response.status_code >= 400:
            text = ''
            try:
                error_data = response.json()
            except ValueError:
                error_data = None
                text = response.text

            error = error_for_status(
                response.status_code,
                method,
                endpoint,
                response_data=error_data,
                headers=headers,
                text=text,
            )
            logger.debug(f'{error.request} returned HTTP {response.status_code}')
            raise error

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        return APIResponse(
            status_code=response.status_code,
            data=data,
            headers=headers,
            success=200 <= response.status_code < 300,
        )

    def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        kwargs.setdefault('timeout', self.config.timeout)

        try:
            response = self.session.get(url, params=params, **kwargs)
        except requests.RequestException as e:
            logger.error(f'Network error during GET {endpoint}: {e}')
            raise ServiceAPIError(
                f'Network error: {e}', method='GET', endpoint=endpoint
            )
        return self._handle_response(response, 'GET', endpoint)

    def post(
        self, endpoint: str, data: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make POST request.

        Args:
            endpoint: API endpoint
            data: Request body data
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        kwargs.setdefault('timeout', self.config.timeout)

        try:
            response = self.session.post(url, json=data, **kwargs)
        except requests.RequestException as e:
            logger.error(f'Network error during POST {endpoint}: {e}')
            raise ServiceAPIError(
                f'Network error: {e}', method='POST', endpoint=endpoint
            )
        return self._handle_response(response, 'POST', endpoint)

    def close(self):
        """Close the client session."""
        self.session.close()
        logger.info('Service client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class ServiceClientFactory:
    """Factory for creating site API clients."""

    @staticmethod
    def create_client(config: ServiceConfig) -> ServiceClient:
        """Create service client from configuration.

        Args:
            config: Site API configuration

        Returns:
            Configured service client

        Raises:
            ServiceAuthenticationError: If no token is configured
        """
        if not config.token:
            raise ServiceAuthenticationError('An API token must be provided')

        return ServiceClient(config)
