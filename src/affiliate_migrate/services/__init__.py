"""Collaborator interfaces and their implementations."""

from .base import AffiliateStore, PermissionService, ProgressStore, UserDirectory
from .memory import (
    InMemoryAffiliateStore,
    InMemoryProgressStore,
    InMemoryUserDirectory,
    StaticPermissionService,
)
from .progress import JsonFileProgressStore
from .http import HttpAffiliateStore, HttpPermissionService, HttpUserDirectory

__all__ = [
    'AffiliateStore',
    'PermissionService',
    'ProgressStore',
    'UserDirectory',
    'InMemoryAffiliateStore',
    'InMemoryProgressStore',
    'InMemoryUserDirectory',
    'StaticPermissionService',
    'JsonFileProgressStore',
    'HttpAffiliateStore',
    'HttpPermissionService',
    'HttpUserDirectory',
]
