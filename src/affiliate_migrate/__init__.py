"""Affiliate Migration Tool

Resumable, step-wise migration of existing site users into affiliate
accounts. Each step converts one page of users and persists its progress,
so a job can be driven by short-lived invocations.
"""

__version__ = '0.1.0'

from .migration import (
    DONE,
    BatchRunner,
    ConfigurationError,
    MigrateUsersBatch,
    PermissionDeniedError,
)

__all__ = [
    'DONE',
    'BatchRunner',
    'ConfigurationError',
    'MigrateUsersBatch',
    'PermissionDeniedError',
]
