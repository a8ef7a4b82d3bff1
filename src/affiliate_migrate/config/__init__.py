"""Configuration models."""

from .config import (
    Config,
    JobConfig,
    LoggingConfig,
    MigrationConfig,
    ProgressConfig,
    ServiceConfig,
    create_template,
)

__all__ = [
    'Config',
    'JobConfig',
    'LoggingConfig',
    'MigrationConfig',
    'ProgressConfig',
    'ServiceConfig',
    'create_template',
]
