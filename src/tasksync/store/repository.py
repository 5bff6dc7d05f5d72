"""Storage interfaces for the sync engine.

SyncStore is the persistence contract the handlers depend on. Two
implementations exist: PostgresSyncStore (asyncpg) for production and
InMemorySyncStore for local development and tests.

ProjectMembership is the capability query used during assignment; project
membership itself is managed elsewhere, the sync handlers only ask whether
a user belongs to a project.
"""

from typing import Optional, Protocol, Tuple, runtime_checkable

from tasksync.store.models import (
    Installation,
    Integration,
    IssueLink,
    IssueTaskDraft,
    NewIssueLink,
    NewPullRequestLink,
    PullRequestLink,
    StatusLane,
    Task,
)


class DatabaseError(Exception):
    """Raised when a database operation fails.

    This exception wraps underlying database errors to provide
    a consistent interface for error handling.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


@runtime_checkable
class ProjectMembership(Protocol):
    """Capability query: is an internal user a member of a project?"""

    async def is_project_member(self, project_id: int, user_id: int) -> bool:
        ...


@runtime_checkable
class SyncStore(Protocol):
    """Protocol defining the persistence operations of the sync engine.

    Link creation must respect the uniqueness invariants:
    - one IssueLink per (integration_id, issue_number) and per task
    - one PullRequestLink per (integration_id, pull_number) and per task
    - one Integration per repository full name

    create_task_for_issue performs the check and both inserts atomically
    and returns None when the issue is already linked.
    """

    # Integrations -----------------------------------------------------------

    async def get_integration_by_repository(
        self, repository_full_name: str
    ) -> Optional[Integration]:
        ...

    async def get_integration(self, integration_id: int) -> Optional[Integration]:
        ...

    async def get_integration_for_project(
        self, project_id: int
    ) -> Optional[Integration]:
        ...

    async def delete_integration(self, integration_id: int) -> bool:
        ...

    async def delete_integrations_for_installation(self, installation_pk: int) -> int:
        ...

    # Installations ----------------------------------------------------------

    async def get_installation(self, installation_id: int) -> Optional[Installation]:
        """Get an installation by its GitHub installation id."""
        ...

    async def find_installation_by_login(self, login: str) -> Optional[Installation]:
        ...

    async def set_installation_suspended(
        self, installation_pk: int, suspended: bool
    ) -> None:
        ...

    async def delete_installation(self, installation_pk: int) -> bool:
        ...

    # Tasks ------------------------------------------------------------------

    async def get_task(self, task_id: int) -> Optional[Task]:
        ...

    async def find_task_by_number(self, project_id: int, number: int) -> Optional[Task]:
        """Find a task that is not soft-deleted by its project number."""
        ...

    async def update_task(self, task: Task) -> None:
        ...

    async def get_lane(self, project_id: int, done: bool) -> Optional[StatusLane]:
        """Get the project's done lane (done=True) or open lane."""
        ...

    async def create_task_for_issue(
        self, draft: IssueTaskDraft, status_id: int
    ) -> Optional[Tuple[Task, IssueLink]]:
        ...

    # Issue links ------------------------------------------------------------

    async def get_issue_link(
        self, integration_id: int, issue_number: int
    ) -> Optional[IssueLink]:
        ...

    async def get_issue_link_for_task(self, task_id: int) -> Optional[IssueLink]:
        ...

    async def create_issue_link(self, link: NewIssueLink) -> IssueLink:
        """Raises LinkConflictError if the issue or the task is already linked."""
        ...

    async def update_issue_link(self, link: IssueLink) -> None:
        ...

    async def delete_issue_link(self, link_id: int) -> bool:
        """Delete the link only; the task is kept."""
        ...

    async def delete_issue_link_and_task(self, link: IssueLink) -> None:
        ...

    # Pull request links -----------------------------------------------------

    async def get_pull_request_link(
        self, integration_id: int, pull_number: int
    ) -> Optional[PullRequestLink]:
        ...

    async def get_pull_request_link_for_task(
        self, task_id: int
    ) -> Optional[PullRequestLink]:
        ...

    async def create_pull_request_link(
        self, link: NewPullRequestLink
    ) -> PullRequestLink:
        """Raises LinkConflictError if the PR or the task is already linked."""
        ...

    async def update_pull_request_link(self, link: PullRequestLink) -> None:
        ...

    async def delete_pull_request_link(self, link_id: int) -> bool:
        ...

    async def health_check(self) -> bool:
        ...
