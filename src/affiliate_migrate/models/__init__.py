"""Data models for users, affiliates and job progress."""

from .user import User, UserQuery
from .affiliate import Affiliate, AffiliateCreate
from .progress import MigrationProgress, ProgressKeys

__all__ = [
    'User',
    'UserQuery',
    'Affiliate',
    'AffiliateCreate',
    'MigrationProgress',
    'ProgressKeys',
]
