"""Issue event synchronization.

Issues own the tasks they create: an ``opened`` issue in an integrated
repository creates a task, later issue events update it, and deleting the
issue deletes the task. Per (integration, issue number):

    opened      no link  -> create task in open lane + IssueLink
    opened      linked   -> no-op (duplicate delivery)
    edited               -> copy title/body to task name/description
    closed               -> task to done lane
    reopened             -> task to open lane
    deleted              -> delete IssueLink and task
    assigned             -> assign owner of the login if project member
    unassigned           -> clear assignee
"""

import logging
from typing import Optional

from tasksync.store.models import IssueTaskDraft
from tasksync.store.repository import ProjectMembership, SyncStore
from tasksync.sync.base import TaskSyncHandler
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.models import SyncResult
from tasksync.webhook.models import GitHubIssue, GitHubUser, IssueAction

logger = logging.getLogger(__name__)


class IssueSyncHandler(TaskSyncHandler):
    """Applies issue events to the tasks they own.

    Attributes:
        system_user_id: Internal user recorded as creator and assignee of
            tasks created from issues.
    """

    def __init__(
        self,
        store: SyncStore,
        membership: ProjectMembership,
        installations: InstallationLifecycleManager,
        system_user_id: int,
    ):
        super().__init__(store, membership, installations)
        self.system_user_id = system_user_id

    async def handle(
        self,
        action: Optional[str],
        repository_full_name: str,
        issue: GitHubIssue,
        assignee: Optional[GitHubUser] = None,
    ) -> SyncResult:
        integration = await self.store.get_integration_by_repository(
            repository_full_name
        )
        if integration is None:
            return SyncResult.not_linked(f"{repository_full_name} is not integrated")

        try:
            parsed = IssueAction(action)
        except ValueError:
            return SyncResult.not_applicable(f"issue action {action!r}")

        if parsed is IssueAction.OPENED:
            return await self._open(integration, repository_full_name, issue)

        link = await self.store.get_issue_link(integration.id, issue.number)
        if link is None:
            return SyncResult.not_linked(f"issue #{issue.number} is not linked")
        task = await self.store.get_task(link.task_id)
        if task is None:
            return SyncResult.not_linked(f"task {link.task_id} no longer exists")

        if parsed is IssueAction.EDITED:
            task.name = issue.title
            task.description = issue.body
            await self.store.update_task(task)
            link.title = issue.title
            link.body = issue.body
            if issue.html_url:
                link.url = issue.html_url
            await self.store.update_issue_link(link)
            return SyncResult.applied("task updated from issue")

        if parsed is IssueAction.CLOSED:
            return await self.move_task(task, done=True)

        if parsed is IssueAction.REOPENED:
            return await self.move_task(task, done=False)

        if parsed is IssueAction.DELETED:
            await self.store.delete_issue_link_and_task(link)
            logger.info(
                "Issue deleted, task removed",
                extra={
                    "repository": repository_full_name,
                    "issue_number": issue.number,
                    "task_id": task.id,
                },
            )
            return SyncResult.applied("issue link and task deleted")

        if parsed is IssueAction.ASSIGNED:
            return await self.assign_task(task, integration, assignee)

        return await self.unassign_task(task)

    async def _open(self, integration, repository_full_name: str, issue: GitHubIssue) -> SyncResult:
        # Cheap pre-check; the store re-checks atomically on insert
        if await self.store.get_issue_link(integration.id, issue.number) is not None:
            return SyncResult.no_op(f"issue #{issue.number} already linked")

        lane = await self.store.get_lane(integration.project_id, done=False)
        if lane is None:
            logger.warning(
                "Project has no open lane, issue not imported",
                extra={
                    "project_id": integration.project_id,
                    "issue_number": issue.number,
                },
            )
            return SyncResult.no_op("project has no open lane")

        draft = IssueTaskDraft(
            integration=integration,
            issue_number=issue.number,
            name=issue.title,
            description=issue.body,
            url=issue.html_url,
            created_by=self.system_user_id,
            assignee_id=self.system_user_id,
        )
        created = await self.store.create_task_for_issue(draft, status_id=lane.id)
        if created is None:
            return SyncResult.no_op(f"issue #{issue.number} already linked")

        task, link = created
        logger.info(
            "Task created from issue",
            extra={
                "repository": repository_full_name,
                "issue_number": issue.number,
                "task_id": task.id,
                "task_number": task.number,
            },
        )
        return SyncResult.applied(f"task #{task.number} created")
