"""Task operations shared by the issue and pull request handlers."""

import logging
from typing import Optional

from tasksync.store.models import Integration, Task
from tasksync.store.repository import ProjectMembership, SyncStore
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.models import SyncResult
from tasksync.webhook.models import GitHubUser

logger = logging.getLogger(__name__)


class TaskSyncHandler:
    """Base class holding the collaborators every linked-task handler needs.

    Attributes:
        store: Persistence for links and tasks.
        membership: Capability query for project membership.
        installations: Resolves GitHub logins to internal users.
    """

    def __init__(
        self,
        store: SyncStore,
        membership: ProjectMembership,
        installations: InstallationLifecycleManager,
    ):
        self.store = store
        self.membership = membership
        self.installations = installations

    async def move_task(self, task: Task, done: bool) -> SyncResult:
        """Move a task to its project's done lane or open lane.

        A project without a lane of the requested kind leaves the task
        untouched and yields a no-op.
        """
        kind = "done" if done else "open"
        lane = await self.store.get_lane(task.project_id, done=done)
        if lane is None:
            logger.warning(
                "Project has no %s lane",
                kind,
                extra={"project_id": task.project_id, "task_id": task.id},
            )
            return SyncResult.no_op(f"project has no {kind} lane")
        task.status_id = lane.id
        await self.store.update_task(task)
        return SyncResult.applied(f"task moved to {kind} lane")

    async def assign_task(
        self,
        task: Task,
        integration: Integration,
        assignee: Optional[GitHubUser],
    ) -> SyncResult:
        """Assign a task to the internal owner of a GitHub login.

        Applies only when the login belongs to a known installation and its
        user is a member of the task's project.
        """
        if assignee is None:
            return SyncResult.no_op("assigned event without assignee")

        user_id = await self.installations.resolve_user(assignee.login)
        if user_id is None:
            return SyncResult.not_linked(f"no installation for {assignee.login}")

        if not await self.membership.is_project_member(integration.project_id, user_id):
            logger.info(
                "Assignee is not a project member",
                extra={"login": assignee.login, "project_id": integration.project_id},
            )
            return SyncResult.no_op(f"{assignee.login} is not a project member")

        task.assignee_id = user_id
        await self.store.update_task(task)
        return SyncResult.applied("task assigned")

    async def unassign_task(self, task: Task) -> SyncResult:
        task.assignee_id = None
        await self.store.update_task(task)
        return SyncResult.applied("task unassigned")
