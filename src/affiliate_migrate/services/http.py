"""Collaborators backed by the site REST API."""

from typing import List, Optional

from loguru import logger

from ..api.client import ServiceClient
from ..api.exceptions import ServiceAuthenticationError, ServicePermissionError
from ..models.affiliate import AffiliateCreate
from ..models.user import User, UserQuery
from .base import AffiliateStore, PermissionService, UserDirectory


class HttpUserDirectory(UserDirectory):
    """User directory served by ``/users``.

    Queries are POSTed because the exclusion list is unbounded.
    """

    def __init__(self, client: ServiceClient):
        self.client = client

    def list_users(self, query: UserQuery) -> List[User]:
        response = self.client.post('/users/query', data=query.to_payload())
        return [User(**user_data) for user_data in response.data or []]

    def count_users(self, query: UserQuery) -> int:
        payload = query.to_payload()
        # Counting ignores paging
        payload.pop('offset')
        payload['number'] = -1
        response = self.client.post('/users/count', data=payload)
        return int(response.data['count'])


class HttpAffiliateStore(AffiliateStore):
    """Affiliate store served by ``/affiliates``."""

    def __init__(self, client: ServiceClient):
        self.client = client
        self.logger = logger.bind(component='HttpAffiliateStore')

    def insert(self, affiliate: AffiliateCreate) -> Optional[int]:
        response = self.client.post('/affiliates', data=affiliate.to_payload())

        affiliate_id = (response.data or {}).get('affiliate_id')
        if affiliate_id is None:
            self.logger.warning(
                f'Affiliate for user {affiliate.user_id} was not created'
            )
            return None
        return int(affiliate_id)

    def list_user_ids(self) -> List[int]:
        response = self.client.get('/affiliates/user-ids')
        return [int(user_id) for user_id in response.data or []]

    def exists_for_user(self, user_id: int) -> bool:
        response = self.client.get('/affiliates', params={'user_id': user_id})
        return bool(response.data)


class HttpPermissionService(PermissionService):
    """Capability checks served by ``/permissions/<capability>``."""

    def __init__(self, client: ServiceClient):
        self.client = client

    def current_user_can(self, capability: str) -> bool:
        try:
            response = self.client.get(f'/permissions/{capability}')
        except (ServiceAuthenticationError, ServicePermissionError) as e:
            logger.debug(f'{e} ({capability} not granted)')
            return False
        return bool((response.data or {}).get('allowed', False))
