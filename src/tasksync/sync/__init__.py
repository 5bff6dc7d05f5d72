"""Synchronization handlers applying GitHub events to tasks."""

from tasksync.sync.base import TaskSyncHandler
from tasksync.sync.commits import (
    COMMIT_REFERENCE_PATTERN,
    CommitReference,
    parse_commit_reference,
)
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.issues import IssueSyncHandler
from tasksync.sync.linking import LinkService
from tasksync.sync.models import SyncOutcome, SyncResult
from tasksync.sync.pulls import PullRequestSyncHandler
from tasksync.sync.push import PushSyncHandler

__all__ = [
    "COMMIT_REFERENCE_PATTERN",
    "CommitReference",
    "parse_commit_reference",
    "InstallationLifecycleManager",
    "IssueSyncHandler",
    "LinkService",
    "PullRequestSyncHandler",
    "PushSyncHandler",
    "SyncOutcome",
    "SyncResult",
    "TaskSyncHandler",
]
