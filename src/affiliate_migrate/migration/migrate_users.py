"""Batch process that converts existing users into affiliates."""

import math
from typing import Any, Dict, List, Optional, Set, Union

from ..config.config import Config, JobConfig
from ..models.affiliate import AffiliateCreate
from ..models.progress import MigrationProgress, ProgressKeys
from ..models.user import CONVERSION_FIELDS, UserQuery
from ..services.base import (
    AffiliateStore,
    PermissionService,
    ProgressStore,
    UserDirectory,
)
from .batch import DONE, BatchProcess, Step
from .exceptions import BatchProcessError, ConfigurationError

DEFAULT_PAGE_SIZE = 100


class MigrateUsersBatch(BatchProcess):
    """Migrates users holding one of the selected roles to affiliate accounts.

    Users that already own an affiliate when the job starts are snapshotted by
    ``pre_fetch`` and excluded from every page. Pages are ordered by user ID so
    that step ``n`` always covers candidates ``(n - 1) * page_size`` onwards.
    Steps for one job must not run concurrently.
    """

    batch_id = 'migrate-users'

    def __init__(
        self,
        users: UserDirectory,
        affiliates: AffiliateStore,
        progress_store: ProgressStore,
        permissions: PermissionService,
        job: Optional[JobConfig] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        batch_id: Optional[str] = None,
        capability: Optional[str] = None,
        guard_duplicates: bool = False,
    ):
        """Initialize the user migration.

        Args:
            users: Directory the candidates are read from
            affiliates: Store the affiliates are written to
            progress_store: Store holding job state between steps
            permissions: Authorization service for the current principal
            job: Role selection; may instead be supplied through ``init``
            page_size: Users converted per step
            batch_id: Override of the batch ID the progress keys derive from
            capability: Capability required to run steps
            guard_duplicates: Skip users that already have an affiliate
        """
        super().__init__(
            progress_store, permissions, batch_id=batch_id, capability=capability
        )
        if page_size <= 0:
            raise ValueError('Page size must be positive')

        self.users = users
        self.affiliates = affiliates
        self.job = job or JobConfig()
        self.page_size = page_size
        self.guard_duplicates = guard_duplicates
        self.keys = ProgressKeys.for_batch(self.batch_id)

    @classmethod
    def from_config(
        cls,
        config: Config,
        users: UserDirectory,
        affiliates: AffiliateStore,
        progress_store: ProgressStore,
        permissions: PermissionService,
        job: Optional[JobConfig] = None,
    ) -> 'MigrateUsersBatch':
        """Build the batch process from the tool configuration.

        ``job`` replaces the role selection of ``config`` when given.
        """
        return cls(
            users,
            affiliates,
            progress_store,
            permissions,
            job=job if job is not None else config.job,
            page_size=config.migration.page_size,
            batch_id=config.migration.batch_id,
            capability=config.migration.capability,
            guard_duplicates=config.migration.guard_duplicates,
        )

    @property
    def roles(self) -> Set[str]:
        return set(self.job.roles)

    def init(self, data: Optional[Union[Dict[str, Any], JobConfig]] = None) -> None:
        """Set the role selection for this run.

        Args:
            data: Mapping with a ``roles`` entry, or a ``JobConfig``. Empty
                selections are accepted here and rejected by ``process_step``.

        Raises:
            BatchProcessError: If roles were already selected
        """
        if data is None:
            return

        job = data if isinstance(data, JobConfig) else JobConfig(**data)
        if not job.roles:
            return

        if self.job.roles and self.job.roles != job.roles:
            raise BatchProcessError(
                'User roles were already selected for this migration.',
                code='roles_already_set',
            )

        self.job = job
        self.logger.info(f'Migrating users with roles: {", ".join(sorted(job.roles))}')

    def pre_fetch(self) -> None:
        """Cache the IDs of existing affiliates and the number of users to migrate.

        Each value is computed only if it is not stored yet, so repeated calls
        within one run are cheap. Without a role selection there is nothing to
        count yet and the total is left unset.
        """
        affiliate_user_ids = self.progress_store.get(self.keys.user_ids)

        if affiliate_user_ids is None:
            affiliate_user_ids = self.affiliates.list_user_ids()
            self.progress_store.write(self.keys.user_ids, affiliate_user_ids)
            self.logger.info(
                f'Found {len(affiliate_user_ids)} users that are already affiliates'
            )
        else:
            self.logger.debug('Using cached affiliate user IDs')

        if not self.roles:
            # Counted once roles are selected
            self.logger.warning('No roles selected, users to migrate not counted')
            return

        total_to_migrate = self.progress_store.get(self.keys.total_count)

        if total_to_migrate is None:
            total_to_migrate = self.users.count_users(
                UserQuery(
                    role_in=sorted(self.roles),
                    exclude=affiliate_user_ids,
                    limit=-1,
                )
            )
            self.progress_store.write(self.keys.total_count, total_to_migrate)
            self.logger.info(f'{total_to_migrate} users to migrate')
        else:
            self.logger.debug('Using cached migration total')

    def process_step(self, step: Step) -> Step:
        """Convert one page of users into affiliates.

        Args:
            step: Step number, starting at 1, or ``DONE``

        Returns:
            ``step + 1``, or ``DONE`` once a page comes back empty

        Raises:
            ConfigurationError: If no roles were selected
            ValueError: If ``step`` is not a positive step number
        """
        if not self.roles:
            raise ConfigurationError('No user roles were selected for migration.')

        if step == DONE:
            return DONE

        step = self._validate_step(step)
        current_count = self.progress_store.get(self.keys.current_count, 0)

        users = self.users.list_users(
            UserQuery(
                role_in=sorted(self.roles),
                exclude=self.progress_store.get(self.keys.user_ids, []),
                offset=(step - 1) * self.page_size,
                limit=self.page_size,
                order_by='id',
                order='ASC',
                fields=list(CONVERSION_FIELDS),
            )
        )

        if not users:
            self.logger.info(f'Step {step}: no users left, migration done')
            return DONE

        inserted: List[Optional[int]] = []

        try:
            for user in users:
                if self.guard_duplicates and self.affiliates.exists_for_user(user.id):
                    self.logger.debug(f'User {user.id} is already an affiliate')
                    continue

                inserted.append(self.affiliates.insert(AffiliateCreate.from_user(user)))
                self.logger.debug(f'Converted user {user.id}')
        except Exception as e:
            self.logger.error(
                f'Step {step} failed after {len(inserted)} conversions: {e}'
            )
            self._record_conversions(current_count, len(inserted))
            raise

        migrated = self._record_conversions(current_count, len(inserted))
        self.logger.info(
            f'Step {step}: converted {len(inserted)} users ({migrated} in total)'
        )

        return step + 1

    def finish(self) -> None:
        """Clear every stored value of this job."""
        for key in self.keys.all():
            self.progress_store.delete(key)
        self.logger.info('Migration state cleared')

    def progress(self) -> MigrationProgress:
        """Read the stored progress of this job."""
        return MigrationProgress(
            batch_id=self.batch_id,
            excluded_user_ids=self.progress_store.get(self.keys.user_ids),
            total_count=self.progress_store.get(self.keys.total_count),
            migrated_count=self.progress_store.get(self.keys.current_count, 0),
        )

    def resume_step(self) -> int:
        """Return the step to continue an interrupted run from.

        Every page but the last converts a full page of users, so the migrated
        count determines the next page. A partly converted page is skipped
        unless the duplicate guard is on, in which case it is safe to run it
        again. Users skipped by the guard are not counted, which can only move
        the result to an earlier page.
        """
        migrated = self.progress_store.get(self.keys.current_count, 0)
        if self.guard_duplicates:
            return migrated // self.page_size + 1
        return math.ceil(migrated / self.page_size) + 1

    def _record_conversions(self, current_count: int, converted: int) -> int:
        migrated = current_count + converted
        self.progress_store.write(self.keys.current_count, migrated)
        return migrated

    @staticmethod
    def _validate_step(step: Any) -> int:
        if isinstance(step, bool):
            raise ValueError(f'Invalid step: {step!r}')
        if isinstance(step, str) and step.strip().isdigit():
            step = int(step)
        if not isinstance(step, int) or step < 1:
            raise ValueError(f'Invalid step: {step!r}')
        return step
