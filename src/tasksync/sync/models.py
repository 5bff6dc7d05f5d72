"""Results returned by sync handlers and the dispatcher."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from tasksync.store.models import Task


class SyncOutcome(str, Enum):
    """How a webhook delivery was resolved.

    Every outcome is acknowledged to GitHub with HTTP 200.

    Attributes:
        APPLIED: Local state changed.
        NO_OP: The event was understood but required no change
            (for example a duplicate ``opened`` delivery).
        NOT_LINKED: No integration, installation or link matched.
        NOT_APPLICABLE: The event type or action is not handled.
    """

    APPLIED = "applied"
    NO_OP = "no_op"
    NOT_LINKED = "not_linked"
    NOT_APPLICABLE = "not_applicable"


class SyncResult(BaseModel):
    """Outcome of handling one delivery.

    Attributes:
        outcome: How the delivery was resolved.
        detail: Short human-readable explanation for logs and responses.
        tasks: Tasks whose new state should be pushed back to GitHub.
    """

    outcome: SyncOutcome
    detail: str = ""
    tasks: List[Task] = Field(default_factory=list)

    @classmethod
    def applied(cls, detail: str = "", tasks: Optional[List[Task]] = None) -> "SyncResult":
        return cls(outcome=SyncOutcome.APPLIED, detail=detail, tasks=tasks or [])

    @classmethod
    def no_op(cls, detail: str = "") -> "SyncResult":
        return cls(outcome=SyncOutcome.NO_OP, detail=detail)

    @classmethod
    def not_linked(cls, detail: str = "") -> "SyncResult":
        return cls(outcome=SyncOutcome.NOT_LINKED, detail=detail)

    @classmethod
    def not_applicable(cls, detail: str = "") -> "SyncResult":
        return cls(outcome=SyncOutcome.NOT_APPLICABLE, detail=detail)
