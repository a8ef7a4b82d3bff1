"""Batch process exceptions."""

from typing import Optional


class BatchProcessError(Exception):
    """Base exception for batch process errors."""

    code = 'batch_process_error'

    def __init__(self, message: str, code: Optional[str] = None):
        """Initialize batch process error.

        Args:
            message: Error message
            code: Machine readable error kind
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(BatchProcessError):
    """The job was not given what it needs to run a step."""

    code = 'no_roles_found'


class PermissionDeniedError(BatchProcessError):
    """The current principal may not run the batch process."""

    code = 'permission_denied'
