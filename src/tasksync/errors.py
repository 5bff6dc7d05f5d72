"""Error taxonomy for webhook synchronization.

Only UnauthorizedError and BadRequestError ever reach the webhook sender.
The webhook path reports missing linkage and unsupported events or actions
as SyncOutcome values. NotLinkedError and LinkConflictError are raised by
the linking entry points used from the REST layer.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for synchronization errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code the error maps to.
    """

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnauthorizedError(SyncError):
    """Raised when a webhook signature is missing, malformed or wrong."""

    status_code = 401


class BadRequestError(SyncError):
    """Raised when an authenticated payload cannot be deserialized."""

    status_code = 400


class NotLinkedError(SyncError):
    """Raised when no integration, installation or link matches a request."""

    status_code = 404


class LinkConflictError(SyncError):
    """Raised when creating a link would break a uniqueness invariant.

    Attributes:
        task_id: The task the link was requested for.
        external_number: The issue or pull request number, if known.
    """

    status_code = 409

    def __init__(
        self,
        message: str,
        task_id: Optional[int] = None,
        external_number: Optional[int] = None,
    ):
        self.task_id = task_id
        self.external_number = external_number
        super().__init__(message)
