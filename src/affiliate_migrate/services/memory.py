"""In-memory collaborators, used for tests and for embedding the engine."""

import copy
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from ..models.affiliate import Affiliate, AffiliateCreate
from ..models.user import User, UserQuery
from .base import AffiliateStore, PermissionService, ProgressStore, UserDirectory


class InMemoryUserDirectory(UserDirectory):
    """User directory backed by a list of users."""

    def __init__(self, users: Optional[Iterable[User]] = None):
        self.users: List[User] = list(users or [])

    def add(self, user: User) -> None:
        self.users.append(user)

    def _matching(self, query: UserQuery) -> List[User]:
        excluded = set(query.exclude)
        return [
            user
            for user in self.users
            if user.id not in excluded
            and (not query.role_in or user.has_any_role(query.role_in))
        ]

    def list_users(self, query: UserQuery) -> List[User]:
        users = sorted(
            self._matching(query),
            key=lambda user: getattr(user, query.order_by),
            reverse=query.order == 'DESC',
        )
        users = users[query.offset :]
        if query.limit != -1:
            users = users[: query.limit]
        return [user.copy() for user in users]

    def count_users(self, query: UserQuery) -> int:
        return len(self._matching(query))


class InMemoryAffiliateStore(AffiliateStore):
    """Affiliate store backed by a dictionary keyed by affiliate ID."""

    def __init__(self):
        self.affiliates: Dict[int, Affiliate] = {}
        self._next_id = 1

    def insert(self, affiliate: AffiliateCreate) -> Optional[int]:
        affiliate_id = self._next_id
        self._next_id += 1
        self.affiliates[affiliate_id] = Affiliate(
            affiliate_id=affiliate_id, **affiliate.dict()
        )
        logger.debug(f'Stored affiliate {affiliate_id} for user {affiliate.user_id}')
        return affiliate_id

    def list_user_ids(self) -> List[int]:
        return [affiliate.user_id for affiliate in self.affiliates.values()]

    def exists_for_user(self, user_id: int) -> bool:
        return any(
            affiliate.user_id == user_id for affiliate in self.affiliates.values()
        )


class InMemoryProgressStore(ProgressStore):
    """Progress store backed by a dictionary."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self.data:
            return default
        # Callers must not be able to mutate stored values in place
        return copy.deepcopy(self.data[key])

    def write(self, key: str, value: Any) -> None:
        self.data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class StaticPermissionService(PermissionService):
    """Grants a fixed set of capabilities."""

    def __init__(self, capabilities: Optional[Iterable[str]] = None):
        self.capabilities = set(capabilities or [])

    def current_user_can(self, capability: str) -> bool:
        return capability in self.capabilities
