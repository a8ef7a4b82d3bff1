"""Typed view of the persisted state of a batch process."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ProgressKeys(BaseModel):
    """Progress store keys owned by one batch process."""

    user_ids: str
    total_count: str
    current_count: str

    @classmethod
    def for_batch(cls, batch_id: str) -> 'ProgressKeys':
        prefix = batch_id.replace('-', '_')
        return cls(
            user_ids=f'{prefix}_user_ids',
            total_count=f'{prefix}_total_count',
            current_count=f'{prefix}_current_count',
        )

    def all(self) -> List[str]:
        return [self.user_ids, self.total_count, self.current_count]


class MigrationProgress(BaseModel):
    """Snapshot of a job's persisted progress."""

    batch_id: str = Field(..., description='Batch process ID')
    excluded_user_ids: Optional[List[int]] = Field(
        default=None, description='User IDs that already had an affiliate'
    )
    total_count: Optional[int] = Field(
        default=None, description='Users to migrate in this run'
    )
    migrated_count: int = Field(default=0, description='Users converted so far')

    @property
    def started(self) -> bool:
        return self.excluded_user_ids is not None or self.total_count is not None

    @property
    def percentage(self) -> float:
        if not self.total_count:
            return 0.0
        return min(100.0, self.migrated_count * 100.0 / self.total_count)
