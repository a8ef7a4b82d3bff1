"""Tests for the REST-backed collaborators."""

from datetime import datetime
from unittest.mock import Mock

import pytest

from src.affiliate_migrate.api.client import APIResponse
from src.affiliate_migrate.api.exceptions import (
    ServiceAPIError,
    ServiceAuthenticationError,
    ServiceNotFoundError,
    ServicePermissionError,
)
from src.affiliate_migrate.models.affiliate import AffiliateCreate
from src.affiliate_migrate.models.user import UserQuery
from src.affiliate_migrate.services.http import (
    HttpAffiliateStore,
    HttpPermissionService,
    HttpUserDirectory,
)


def api_response(data, status_code=200):
    return APIResponse(status_code=status_code, data=data, headers={}, success=True)


class TestHttpUserDirectory:
    """Test the REST user directory."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock()
        self.directory = HttpUserDirectory(self.client)

    def test_list_users(self):
        """Test users are parsed from the response."""
        self.client.post.return_value = api_response(
            [
                {
                    'id': 3,
                    'user_email': 'a@example.com',
                    'user_registered': '2020-05-01T10:00:00',
                }
            ]
        )

        users = self.directory.list_users(
            UserQuery(role_in=['subscriber'], offset=100, limit=100)
        )

        assert len(users) == 1
        assert users[0].id == 3
        assert users[0].user_registered == datetime(2020, 5, 1, 10, 0)
        endpoint = self.client.post.call_args.args[0]
        payload = self.client.post.call_args.kwargs['data']
        assert endpoint == '/users/query'
        assert payload['offset'] == 100
        assert payload['number'] == 100
        assert payload['role__in'] == ['subscriber']
        self.client.get.assert_not_called()

    def test_list_users_empty(self):
        """Test an empty page."""
        self.client.post.return_value = api_response([])

        assert self.directory.list_users(UserQuery()) == []

    def test_large_exclusion_list_sent_in_body(self):
        """Test thousands of existing affiliates stay out of the URL."""
        self.client.post.return_value = api_response([])
        exclude = list(range(1, 50001))

        self.directory.list_users(UserQuery(role_in=['subscriber'], exclude=exclude))

        assert self.client.post.call_args.kwargs['data']['exclude'] == exclude
        assert 'params' not in self.client.post.call_args.kwargs

    def test_count_users(self):
        """Test counting drops paging parameters."""
        self.client.post.return_value = api_response({'count': 250})

        count = self.directory.count_users(
            UserQuery(role_in=['subscriber'], exclude=[1, 2], offset=5, limit=10)
        )

        assert count == 250
        endpoint = self.client.post.call_args.args[0]
        payload = self.client.post.call_args.kwargs['data']
        assert endpoint == '/users/count'
        assert 'offset' not in payload
        assert payload['number'] == -1
        assert payload['exclude'] == [1, 2]


class TestHttpAffiliateStore:
    """Test the REST affiliate store."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock()
        self.store = HttpAffiliateStore(self.client)
        self.affiliate = AffiliateCreate(
            user_id=7,
            payment_email='seven@example.com',
            date_registered=datetime(2020, 1, 2, 3, 4, 5),
        )

    def test_insert(self):
        """Test inserting posts the affiliate payload."""
        self.client.post.return_value = api_response({'affiliate_id': 99}, 201)

        assert self.store.insert(self.affiliate) == 99
        self.client.post.assert_called_once_with(
            '/affiliates',
            data={
                'status': 'active',
                'user_id': 7,
                'payment_email': 'seven@example.com',
                'date_registered': '2020-01-02T03:04:05',
            },
        )

    def test_insert_without_id(self):
        """Test a response without an affiliate ID returns None."""
        self.client.post.return_value = api_response({})

        assert self.store.insert(self.affiliate) is None

    def test_insert_error_propagates(self):
        """Test API errors are not swallowed."""
        self.client.post.side_effect = ServiceAPIError('boom', status_code=500)

        with pytest.raises(ServiceAPIError):
            self.store.insert(self.affiliate)

    def test_list_user_ids(self):
        """Test listing affiliate user IDs."""
        self.client.get.return_value = api_response(['1', 2, 3])

        assert self.store.list_user_ids() == [1, 2, 3]

    def test_exists_for_user(self):
        """Test looking up a user's affiliate."""
        self.client.get.return_value = api_response([{'affiliate_id': 1}])
        assert self.store.exists_for_user(7) is True
        self.client.get.assert_called_with('/affiliates', params={'user_id': 7})

        self.client.get.return_value = api_response([])
        assert self.store.exists_for_user(8) is False


class TestHttpPermissionService:
    """Test the REST permission service."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock()
        self.permissions = HttpPermissionService(self.client)

    def test_allowed(self):
        """Test a granted capability."""
        self.client.get.return_value = api_response({'allowed': True})

        assert self.permissions.current_user_can('manage_affiliates') is True
        self.client.get.assert_called_once_with('/permissions/manage_affiliates')

    def test_not_allowed(self):
        """Test a refused capability."""
        self.client.get.return_value = api_response({'allowed': False})

        assert self.permissions.current_user_can('manage_affiliates') is False

    def test_forbidden(self):
        """Test a 403 means the capability is missing."""
        self.client.get.side_effect = ServicePermissionError('no', status_code=403)

        assert self.permissions.current_user_can('manage_affiliates') is False

    def test_rejected_token(self):
        """Test a rejected token means the capability is missing."""
        self.client.get.side_effect = ServiceAuthenticationError(
            'Authentication failed',
            status_code=401,
            method='GET',
            endpoint='/permissions/manage_affiliates',
        )

        assert self.permissions.current_user_can('manage_affiliates') is False

    def test_missing_endpoint_propagates(self):
        """Test a site without the permissions endpoint is an error."""
        self.client.get.side_effect = ServiceNotFoundError(
            'Endpoint not found', status_code=404
        )

        with pytest.raises(ServiceNotFoundError):
            self.permissions.current_user_can('manage_affiliates')

    def test_server_error_propagates(self):
        """Test other API errors propagate."""
        self.client.get.side_effect = ServiceAPIError('down', status_code=502)

        with pytest.raises(ServiceAPIError):
            self.permissions.current_user_can('manage_affiliates')
