"""Commit message directives.

A commit message may reference a task by number to change its status:

    "fix login redirect !12"         -> move task 12 to the done lane
    "follow-up close!12"             -> same as above
    "revert redirect reopen!12"      -> move task 12 back to the open lane

Only the first directive in a message is honoured.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field

COMMIT_REFERENCE_PATTERN = re.compile(r"(reopen|close)?!([0-9]+)")


class CommitReference(BaseModel):
    """Status directive parsed from a commit message."""

    task_number: int = Field(..., ge=0)
    reopen: bool = False


def parse_commit_reference(message: str) -> Optional[CommitReference]:
    """Extract the task directive from a commit message, if any.

    Args:
        message: Free-form commit message.

    Returns:
        The first directive found, or None when the message has none.
    """
    match = COMMIT_REFERENCE_PATTERN.search(message or "")
    if match is None:
        return None
    return CommitReference(
        task_number=int(match.group(2)),
        reopen=match.group(1) == "reopen",
    )
