"""Runs a batch process from its first pending step to completion."""

from datetime import datetime
from typing import Callable, Optional

from loguru import logger
from pydantic import BaseModel, Field

from .batch import DONE
from .exceptions import PermissionDeniedError
from .migrate_users import MigrateUsersBatch

ProgressCallback = Callable[[int, Optional[int]], None]


class BatchRunSummary(BaseModel):
    """Summary of a batch run."""

    batch_id: str = Field(..., description='Batch process ID')
    steps_run: int = Field(default=0, description='Non-terminal steps executed')
    migrated_count: int = Field(default=0, description='Users converted in total')
    total_count: Optional[int] = Field(
        default=None, description='Users to migrate in this run'
    )
    finished: bool = Field(default=False, description='Job state was cleared')

    started_at: datetime = Field(..., description='Run start time')
    completed_at: Optional[datetime] = Field(
        default=None, description='Run completion time'
    )


class BatchRunner:
    """Drives a batch process step by step in the current process."""

    def __init__(self, batch: MigrateUsersBatch):
        """Initialize batch runner.

        Args:
            batch: Configured batch process
        """
        self.batch = batch
        self.logger = logger.bind(component='BatchRunner')

    def ensure_permission(self) -> None:
        """Raise if the current principal may not run the batch.

        Raises:
            PermissionDeniedError: If the permission check fails
        """
        if not self.batch.can_process():
            raise PermissionDeniedError(
                'You do not have permission to run this batch process.'
            )

    def run(
        self,
        start_step: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        finish: bool = True,
    ) -> BatchRunSummary:
        """Run the batch until ``process_step`` reports ``DONE``.

        Args:
            start_step: First step to run, defaults to the resume step
            progress_callback: Called with (migrated, total) after every step
            finish: Clear job state once done

        Returns:
            Run summary

        Raises:
            PermissionDeniedError: If the permission check fails before a step
        """
        started_at = datetime.now()

        self.ensure_permission()
        self.batch.pre_fetch()

        step = start_step if start_step is not None else self.batch.resume_step()
        self.logger.info(f'Starting {self.batch.batch_id} at step {step}')

        steps_run = 0
        while True:
            self.ensure_permission()
            next_step = self.batch.process_step(step)

            progress = self.batch.progress()
            if progress_callback:
                progress_callback(progress.migrated_count, progress.total_count)

            if next_step == DONE:
                break

            steps_run += 1
            step = next_step

        summary = BatchRunSummary(
            batch_id=self.batch.batch_id,
            steps_run=steps_run,
            migrated_count=progress.migrated_count,
            total_count=progress.total_count,
            started_at=started_at,
        )

        if finish:
            self.batch.finish()
            summary.finished = True

        summary.completed_at = datetime.now()
        self.logger.info(
            f'{self.batch.batch_id} completed: {summary.migrated_count} users migrated '
            f'in {steps_run} steps'
        )
        return summary
