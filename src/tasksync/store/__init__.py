"""Persistence for integrations, installations, tasks and their links.

Two SyncStore implementations are provided: PostgresSyncStore backed by
asyncpg, and InMemorySyncStore for development and tests.
"""

from tasksync.store.memory import InMemorySyncStore
from tasksync.store.models import (
    Installation,
    Integration,
    IssueLink,
    IssueTaskDraft,
    NewIssueLink,
    NewPullRequestLink,
    Project,
    PullRequestLink,
    StatusLane,
    Task,
)
from tasksync.store.postgres import PostgresSyncStore
from tasksync.store.repository import DatabaseError, ProjectMembership, SyncStore

__all__ = [
    # Models
    "Installation",
    "Integration",
    "IssueLink",
    "IssueTaskDraft",
    "NewIssueLink",
    "NewPullRequestLink",
    "Project",
    "PullRequestLink",
    "StatusLane",
    "Task",
    # Stores
    "DatabaseError",
    "InMemorySyncStore",
    "PostgresSyncStore",
    "ProjectMembership",
    "SyncStore",
]
