"""Interfaces of the collaborators a batch process consumes."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..models.affiliate import AffiliateCreate
from ..models.user import User, UserQuery


class UserDirectory(ABC):
    """Read access to the site's users."""

    @abstractmethod
    def list_users(self, query: UserQuery) -> List[User]:
        """Return the users matching ``query``, honouring order and paging."""
        pass

    @abstractmethod
    def count_users(self, query: UserQuery) -> int:
        """Return how many users match ``query``, ignoring paging."""
        pass


class AffiliateStore(ABC):
    """Write access to affiliate records."""

    @abstractmethod
    def insert(self, affiliate: AffiliateCreate) -> Optional[int]:
        """Insert an affiliate.

        Returns:
            The new affiliate ID, or None if the store refused the record
        """
        pass

    @abstractmethod
    def list_user_ids(self) -> List[int]:
        """Return the user ID of every existing affiliate."""
        pass

    @abstractmethod
    def exists_for_user(self, user_id: int) -> bool:
        """Return whether ``user_id`` already has an affiliate."""
        pass


class ProgressStore(ABC):
    """Key/value store holding job state between step invocations."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete ``key``; a missing key is not an error."""
        pass


class PermissionService(ABC):
    """Authorization checks for the principal running the job."""

    @abstractmethod
    def current_user_can(self, capability: str) -> bool:
        pass
