"""Batch migration engine."""

from .batch import DONE, BatchProcess
from .exceptions import BatchProcessError, ConfigurationError, PermissionDeniedError
from .migrate_users import MigrateUsersBatch
from .runner import BatchRunner, BatchRunSummary

__all__ = [
    'DONE',
    'BatchProcess',
    'BatchProcessError',
    'ConfigurationError',
    'PermissionDeniedError',
    'MigrateUsersBatch',
    'BatchRunner',
    'BatchRunSummary',
]
