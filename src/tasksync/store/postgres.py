"""PostgreSQL implementation of the SyncStore protocol.

This module implements SyncStore and ProjectMembership using asyncpg. It
provides:
- Connection pooling for production use
- Atomic task-and-link creation for newly opened issues
- Translation of unique violations into LinkConflictError

The repository expects the schema from migrations/001_webhook_sync.sql to
be applied before use.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Tuple

import asyncpg

from tasksync.errors import LinkConflictError
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
from tasksync.store.repository import DatabaseError


logger = logging.getLogger(__name__)


_TASK_COLUMNS = """
    id, project_id, number, name, description, status_id,
    assignee_id, created_by, deleted_at
"""

_ISSUE_LINK_COLUMNS = "id, task_id, integration_id, issue_number, url, title, body"

_PULL_LINK_COLUMNS = """
    id, task_id, integration_id, pull_number, url, title, body, branch, merged
"""


class _IssueAlreadyLinked(Exception):
    """Aborts the create-task transaction when another writer won."""


def _rows_affected(result: str) -> int:
    return int(result.split()[-1])


class PostgresSyncStore:
    """PostgreSQL store for integrations, installations, tasks and links.

    Attributes:
        connection_string: PostgreSQL connection URL.
        min_pool_size: Minimum connections in pool.
        max_pool_size: Maximum connections in pool.

    Example:
        >>> async with PostgresSyncStore("postgresql://...") as store:
        ...     integration = await store.get_integration_by_repository("org/repo")
    """

    def __init__(
        self,
        connection_string: str,
        min_pool_size: int = 2,
        max_pool_size: int = 10,
    ):
        self.connection_string = connection_string
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool, raising if not connected.

        Raises:
            DatabaseError: If the pool is not initialized.
        """
        if self._pool is None:
            raise DatabaseError(
                "Database pool not initialized. Call connect() first."
            )
        return self._pool

    async def connect(self) -> None:
        """Initialize the connection pool.

        Raises:
            DatabaseError: If connection fails.
        """
        if self._pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            logger.info(
                "Connecting to PostgreSQL",
                extra={
                    "min_pool_size": self.min_pool_size,
                    "max_pool_size": self.max_pool_size,
                },
            )
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
            )
            logger.info("PostgreSQL connection pool established")
        except Exception as e:
            logger.error(
                "Failed to connect to PostgreSQL",
                extra={"error": str(e)},
            )
            raise DatabaseError(
                f"Failed to connect to PostgreSQL: {e}",
                original_error=e,
            ) from e

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            logger.info("Closing PostgreSQL connection pool")
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "PostgresSyncStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection with an active transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def _fetchrow(self, operation: str, query: str, *args: Any) -> Optional[asyncpg.Record]:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Failed to {operation}", extra={"error": str(e)})
            raise DatabaseError(f"Failed to {operation}: {e}", original_error=e) from e

    async def _execute(self, operation: str, query: str, *args: Any) -> str:
        try:
            async with self.pool.acquire() as conn:
                return await conn.execute(query, *args)
        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Failed to {operation}", extra={"error": str(e)})
            raise DatabaseError(f"Failed to {operation}: {e}", original_error=e) from e

    # Membership -------------------------------------------------------------

    async def is_project_member(self, project_id: int, user_id: int) -> bool:
        row = await self._fetchrow(
            "check project membership",
            "SELECT 1 FROM project_members WHERE project_id = $1 AND user_id = $2",
            project_id,
            user_id,
        )
        return row is not None

    # Integrations -----------------------------------------------------------

    async def get_integration_by_repository(
        self, repository_full_name: str
    ) -> Optional[Integration]:
        row = await self._fetchrow(
            "get integration",
            """
            SELECT id, project_id, installation_id, repository_full_name
            FROM github_integrations
            WHERE repository_full_name = $1
            """,
            repository_full_name,
        )
        return Integration(**dict(row)) if row else None

    async def get_integration(self, integration_id: int) -> Optional[Integration]:
        row = await self._fetchrow(
            "get integration",
            """
            SELECT id, project_id, installation_id, repository_full_name
            FROM github_integrations
            WHERE id = $1
            """,
            integration_id,
        )
        return Integration(**dict(row)) if row else None

    async def get_integration_for_project(
        self, project_id: int
    ) -> Optional[Integration]:
        row = await self._fetchrow(
            "get integration for project",
            """
            SELECT id, project_id, installation_id, repository_full_name
            FROM github_integrations
            WHERE project_id = $1
            ORDER BY id ASC
            LIMIT 1
            """,
            project_id,
        )
        return Integration(**dict(row)) if row else None

    async def delete_integration(self, integration_id: int) -> bool:
        result = await self._execute(
            "delete integration",
            "DELETE FROM github_integrations WHERE id = $1",
            integration_id,
        )
        deleted = _rows_affected(result) > 0
        if deleted:
            logger.info("Deleted integration", extra={"integration_id": integration_id})
        return deleted

    async def delete_integrations_for_installation(self, installation_pk: int) -> int:
        result = await self._execute(
            "delete integrations for installation",
            "DELETE FROM github_integrations WHERE installation_id = $1",
            installation_pk,
        )
        return _rows_affected(result)

    # Installations ----------------------------------------------------------

    async def get_installation(self, installation_id: int) -> Optional[Installation]:
        row = await self._fetchrow(
            "get installation",
            """
            SELECT id, installation_id, user_id, github_login, suspended
            FROM github_installations
            WHERE installation_id = $1
            """,
            installation_id,
        )
        return Installation(**dict(row)) if row else None

    async def find_installation_by_login(self, login: str) -> Optional[Installation]:
        row = await self._fetchrow(
            "find installation by login",
            """
            SELECT id, installation_id, user_id, github_login, suspended
            FROM github_installations
            WHERE github_login = $1
            ORDER BY id ASC
            LIMIT 1
            """,
            login,
        )
        return Installation(**dict(row)) if row else None

    async def set_installation_suspended(
        self, installation_pk: int, suspended: bool
    ) -> None:
        await self._execute(
            "update installation",
            "UPDATE github_installations SET suspended = $2 WHERE id = $1",
            installation_pk,
            suspended,
        )

    async def delete_installation(self, installation_pk: int) -> bool:
        result = await self._execute(
            "delete installation",
            "DELETE FROM github_installations WHERE id = $1",
            installation_pk,
        )
        return _rows_affected(result) > 0

    # Tasks ------------------------------------------------------------------

    async def get_task(self, task_id: int) -> Optional[Task]:
        row = await self._fetchrow(
            "get task",
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = $1",
            task_id,
        )
        return Task(**dict(row)) if row else None

    async def find_task_by_number(self, project_id: int, number: int) -> Optional[Task]:
        row = await self._fetchrow(
            "find task by number",
            f"""
            SELECT {_TASK_COLUMNS} FROM tasks
            WHERE project_id = $1 AND number = $2 AND deleted_at IS NULL
            """,
            project_id,
            number,
        )
        return Task(**dict(row)) if row else None

    async def update_task(self, task: Task) -> None:
        await self._execute(
            "update task",
            """
            UPDATE tasks
            SET name = $2, description = $3, status_id = $4, assignee_id = $5
            WHERE id = $1
            """,
            task.id,
            task.name,
            task.description,
            task.status_id,
            task.assignee_id,
        )

    async def get_lane(self, project_id: int, done: bool) -> Optional[StatusLane]:
        flag = "is_done" if done else "is_open"
        row = await self._fetchrow(
            "get status lane",
            f"""
            SELECT id, project_id, name, ordinal, is_open, is_done
            FROM statuses
            WHERE project_id = $1 AND {flag}
            ORDER BY ordinal ASC
            LIMIT 1
            """,
            project_id,
        )
        return StatusLane(**dict(row)) if row else None

    async def create_task_for_issue(
        self, draft: IssueTaskDraft, status_id: int
    ) -> Optional[Tuple[Task, IssueLink]]:
        """Allocate a task number, create the task and its IssueLink.

        All three writes share one transaction. The link insert uses
        ON CONFLICT DO NOTHING; when it inserts nothing the transaction is
        rolled back, so the counter and the task are not persisted.

        Returns:
            The created task and link, or None if the issue was already
            linked by another writer.
        """
        integration = draft.integration
        try:
            async with self._transaction() as conn:
                number = await conn.fetchval(
                    """
                    UPDATE projects SET task_counter = task_counter + 1
                    WHERE id = $1
                    RETURNING task_counter
                    """,
                    integration.project_id,
                )
                task_row = await conn.fetchrow(
                    f"""
                    INSERT INTO tasks (
                        project_id, number, name, description,
                        status_id, assignee_id, created_by
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                    RETURNING {_TASK_COLUMNS}
                    """,
                    integration.project_id,
                    number,
                    draft.name,
                    draft.description,
                    status_id,
                    draft.assignee_id,
                    draft.created_by,
                )
                link_row = await conn.fetchrow(
                    f"""
                    INSERT INTO github_issue_links (
                        task_id, integration_id, issue_number, url, title, body
                    ) VALUES ($1, $2, $3, $4, $5, $6)
                    ON CONFLICT (integration_id, issue_number) DO NOTHING
                    RETURNING {_ISSUE_LINK_COLUMNS}
                    """,
                    task_row["id"],
                    integration.id,
                    draft.issue_number,
                    draft.url,
                    draft.name,
                    draft.description,
                )
                if link_row is None:
                    raise _IssueAlreadyLinked()
        except _IssueAlreadyLinked:
            logger.info(
                "Issue linked concurrently, discarding duplicate task",
                extra={
                    "integration_id": integration.id,
                    "issue_number": draft.issue_number,
                },
            )
            return None
        except Exception as e:
            logger.error(
                "Failed to create task for issue",
                extra={"issue_number": draft.issue_number, "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to create task for issue: {e}",
                original_error=e,
            ) from e

        return Task(**dict(task_row)), IssueLink(**dict(link_row))

    # Issue links ------------------------------------------------------------

    async def get_issue_link(
        self, integration_id: int, issue_number: int
    ) -> Optional[IssueLink]:
        row = await self._fetchrow(
            "get issue link",
            f"""
            SELECT {_ISSUE_LINK_COLUMNS} FROM github_issue_links
            WHERE integration_id = $1 AND issue_number = $2
            """,
            integration_id,
            issue_number,
        )
        return IssueLink(**dict(row)) if row else None

    async def get_issue_link_for_task(self, task_id: int) -> Optional[IssueLink]:
        row = await self._fetchrow(
            "get issue link for task",
            f"SELECT {_ISSUE_LINK_COLUMNS} FROM github_issue_links WHERE task_id = $1",
            task_id,
        )
        return IssueLink(**dict(row)) if row else None

    async def create_issue_link(self, link: NewIssueLink) -> IssueLink:
        try:
            row = await self._fetchrow(
                "create issue link",
                f"""
                INSERT INTO github_issue_links (
                    task_id, integration_id, issue_number, url, title, body
                ) VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {_ISSUE_LINK_COLUMNS}
                """,
                link.task_id,
                link.integration_id,
                link.issue_number,
                link.url,
                link.title,
                link.body,
            )
        except DatabaseError as e:
            if isinstance(e.original_error, asyncpg.UniqueViolationError):
                raise LinkConflictError(
                    f"Issue #{link.issue_number} or task {link.task_id} is already linked",
                    task_id=link.task_id,
                    external_number=link.issue_number,
                ) from e
            raise
        return IssueLink(**dict(row))

    async def update_issue_link(self, link: IssueLink) -> None:
        await self._execute(
            "update issue link",
            "UPDATE github_issue_links SET url = $2, title = $3, body = $4 WHERE id = $1",
            link.id,
            link.url,
            link.title,
            link.body,
        )

    async def delete_issue_link(self, link_id: int) -> bool:
        result = await self._execute(
            "delete issue link",
            "DELETE FROM github_issue_links WHERE id = $1",
            link_id,
        )
        return _rows_affected(result) > 0

    async def delete_issue_link_and_task(self, link: IssueLink) -> None:
        try:
            async with self._transaction() as conn:
                await conn.execute(
                    "DELETE FROM github_issue_links WHERE id = $1", link.id
                )
                # Pull request links cascade from the task
                await conn.execute("DELETE FROM tasks WHERE id = $1", link.task_id)
        except Exception as e:
            logger.error(
                "Failed to delete issue link and task",
                extra={"link_id": link.id, "task_id": link.task_id, "error": str(e)},
            )
            raise DatabaseError(
                f"Failed to delete issue link and task: {e}",
                original_error=e,
            ) from e

    # Pull request links -----------------------------------------------------

    async def get_pull_request_link(
        self, integration_id: int, pull_number: int
    ) -> Optional[PullRequestLink]:
        row = await self._fetchrow(
            "get pull request link",
            f"""
            SELECT {_PULL_LINK_COLUMNS} FROM github_pull_request_links
            WHERE integration_id = $1 AND pull_number = $2
            """,
            integration_id,
            pull_number,
        )
        return PullRequestLink(**dict(row)) if row else None

    async def get_pull_request_link_for_task(
        self, task_id: int
    ) -> Optional[PullRequestLink]:
        row = await self._fetchrow(
            "get pull request link for task",
            f"SELECT {_PULL_LINK_COLUMNS} FROM github_pull_request_links WHERE task_id = $1",
            task_id,
        )
        return PullRequestLink(**dict(row)) if row else None

    async def create_pull_request_link(
        self, link: NewPullRequestLink
    ) -> PullRequestLink:
        try:
            row = await self._fetchrow(
                "create pull request link",
                f"""
                INSERT INTO github_pull_request_links (
                    task_id, integration_id, pull_number,
                    url, title, body, branch, merged
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING {_PULL_LINK_COLUMNS}
                """,
                link.task_id,
                link.integration_id,
                link.pull_number,
                link.url,
                link.title,
                link.body,
                link.branch,
                link.merged,
            )
        except DatabaseError as e:
            if isinstance(e.original_error, asyncpg.UniqueViolationError):
                raise LinkConflictError(
                    f"Pull request #{link.pull_number} or task {link.task_id} is already linked",
                    task_id=link.task_id,
                    external_number=link.pull_number,
                ) from e
            raise
        return PullRequestLink(**dict(row))

    async def update_pull_request_link(self, link: PullRequestLink) -> None:
        await self._execute(
            "update pull request link",
            """
            UPDATE github_pull_request_links
            SET url = $2, title = $3, body = $4, branch = $5, merged = $6
            WHERE id = $1
            """,
            link.id,
            link.url,
            link.title,
            link.body,
            link.branch,
            link.merged,
        )

    async def delete_pull_request_link(self, link_id: int) -> bool:
        result = await self._execute(
            "delete pull request link",
            "DELETE FROM github_pull_request_links WHERE id = $1",
            link_id,
        )
        return _rows_affected(result) > 0

    async def health_check(self) -> bool:
        """Check if the database connection is healthy."""
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.warning(
                "Database health check failed",
                extra={"error": str(e)},
            )
            return False
