"""Base class for resumable, step-wise batch processes."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from loguru import logger

from ..services.base import PermissionService, ProgressStore

# Terminal value returned by ``process_step``
DONE = 'done'

Step = Union[int, str]


class BatchProcess(ABC):
    """Abstract base class for batch processes.

    A batch process is driven by a caller that invokes ``pre_fetch`` once and
    then ``process_step`` with an increasing step number until it returns
    ``DONE``, followed by ``finish``. Everything needed between two steps lives
    in the progress store, so each step may run in a separate process.
    """

    #: Identifier of the batch process; progress keys are derived from it.
    batch_id: str = ''

    #: Capability the current principal needs to run steps.
    capability: str = 'manage_affiliates'

    def __init__(
        self,
        progress_store: ProgressStore,
        permissions: PermissionService,
        batch_id: Optional[str] = None,
        capability: Optional[str] = None,
    ):
        """Initialize the batch process.

        Args:
            progress_store: Store holding job state between steps
            permissions: Authorization service for the current principal
            batch_id: Override of the class level batch ID
            capability: Override of the required capability
        """
        self.progress_store = progress_store
        self.permissions = permissions
        if batch_id:
            self.batch_id = batch_id
        if capability:
            self.capability = capability
        self.logger = logger.bind(component=self.__class__.__name__)

    def init(self, data: Optional[Dict[str, Any]] = None) -> None:
        """Initialize values needed following instantiation."""
        pass

    def pre_fetch(self) -> None:
        """Compute and cache anything steps need before the first one runs."""
        pass

    def can_process(self) -> bool:
        """Return whether the current principal may run this batch process."""
        return self.permissions.current_user_can(self.capability)

    @abstractmethod
    def process_step(self, step: Step) -> Step:
        """Execute a single step.

        Args:
            step: Step number, starting at 1, or ``DONE``

        Returns:
            The next step number, or ``DONE``
        """
        pass

    @abstractmethod
    def finish(self) -> None:
        """Clean up once ``process_step`` has returned ``DONE``."""
        pass

    def get_items_total(self, key: str) -> Any:
        """Return the stored value for ``key``, or None if absent."""
        return self.progress_store.get(key)

    def clear_items_total(self, key: str) -> None:
        """Delete the stored value for ``key``."""
        self.progress_store.delete(key)
