"""Persistent records for webhook synchronization.

This module defines the records the sync engine reads and writes:
- Project and StatusLane: the task board a repository is bound to
- Task: the internal work item mirrored from issues and pull requests
- Installation: a GitHub App installation and its owning internal user
- Integration: binding between one project and one repository
- IssueLink: owning link from an issue to a task
- PullRequestLink: attached link from a pull request to a task

IssueLink and PullRequestLink are kept as separate types because their
cascade rules differ: deleting an issue deletes its task, while a pull
request never creates or deletes a task.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Project(BaseModel):
    """Internal project that owns tasks and status lanes."""

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    task_counter: int = Field(
        default=0,
        ge=0,
        description="Last task number handed out in this project",
    )


class StatusLane(BaseModel):
    """One status column of a project board.

    Exactly one lane per project is the open lane and exactly one is the
    done lane. Webhook-driven status changes only target those two.
    """

    id: int = Field(..., ge=1)
    project_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    ordinal: int = Field(default=0, ge=0)
    is_open: bool = Field(default=False, description="Initial lane for new work")
    is_done: bool = Field(default=False, description="Terminal lane for finished work")


class Task(BaseModel):
    """Internal work item.

    Attributes:
        id: Store identifier.
        project_id: Owning project.
        number: Per-project task number referenced by commit messages.
        name: Task title.
        description: Task body.
        status_id: Current StatusLane.
        assignee_id: Assigned internal user, if any.
        created_by: Internal user that created the task.
        deleted_at: Soft-delete marker; deleted tasks are ignored by pushes.
    """

    id: int = Field(..., ge=1)
    project_id: int = Field(..., ge=1)
    number: int = Field(..., ge=1)
    name: str = ""
    description: str = ""
    status_id: int = Field(..., ge=1)
    assignee_id: Optional[int] = None
    created_by: int = Field(..., ge=1)
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Installation(BaseModel):
    """GitHub App installation owned by an internal user."""

    id: int = Field(..., ge=1)
    installation_id: int = Field(
        ...,
        description="Installation id assigned by GitHub",
    )
    user_id: int = Field(..., ge=1, description="Owning internal user")
    github_login: str = Field(..., min_length=1)
    suspended: bool = False


class Integration(BaseModel):
    """Binding between one internal project and one GitHub repository."""

    id: int = Field(..., ge=1)
    project_id: int = Field(..., ge=1)
    installation_id: int = Field(
        ...,
        ge=1,
        description="Store id of the Installation that grants access",
    )
    repository_full_name: str = Field(
        ...,
        min_length=3,
        description='Repository path in format "{owner}/{repo}"',
    )

    @property
    def owner(self) -> str:
        return self.repository_full_name.split("/", 1)[0]

    @property
    def repository(self) -> str:
        return self.repository_full_name.split("/", 1)[1]


class IssueLink(BaseModel):
    """Owning link between a GitHub issue and the task that mirrors it.

    Unique per (integration_id, issue_number) and per task_id. When the
    issue is deleted on GitHub the link and its task are deleted together.
    """

    id: int = Field(..., ge=1)
    task_id: int = Field(..., ge=1)
    integration_id: int = Field(..., ge=1)
    issue_number: int = Field(..., ge=1)
    url: str = ""
    title: str = ""
    body: str = ""


class PullRequestLink(BaseModel):
    """Attached link between a GitHub pull request and an existing task.

    Unique per (integration_id, pull_number) and per task_id. Pull request
    edits update the cached title/body here instead of the task.
    """

    id: int = Field(..., ge=1)
    task_id: int = Field(..., ge=1)
    integration_id: int = Field(..., ge=1)
    pull_number: int = Field(..., ge=1)
    url: str = ""
    title: str = ""
    body: str = ""
    branch: str = ""
    merged: bool = False


class NewIssueLink(BaseModel):
    """Fields of an IssueLink before the store assigns its id."""

    task_id: int = Field(..., ge=1)
    integration_id: int = Field(..., ge=1)
    issue_number: int = Field(..., ge=1)
    url: str = ""
    title: str = ""
    body: str = ""


class NewPullRequestLink(BaseModel):
    """Fields of a PullRequestLink before the store assigns its id."""

    task_id: int = Field(..., ge=1)
    integration_id: int = Field(..., ge=1)
    pull_number: int = Field(..., ge=1)
    url: str = ""
    title: str = ""
    body: str = ""
    branch: str = ""
    merged: bool = False


class IssueTaskDraft(BaseModel):
    """Everything needed to create a task from a newly opened issue."""

    integration: Integration
    issue_number: int = Field(..., ge=1)
    name: str = ""
    description: str = ""
    url: str = ""
    created_by: int = Field(..., ge=1)
    assignee_id: Optional[int] = None


def pick_lane(lanes: List[StatusLane], done: bool) -> Optional[StatusLane]:
    """Return the project's done lane or open lane from a list of lanes."""
    for lane in sorted(lanes, key=lambda lane: lane.ordinal):
        if done and lane.is_done:
            return lane
        if not done and lane.is_open:
            return lane
    return None
