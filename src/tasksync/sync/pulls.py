"""Pull request event synchronization.

Pull requests are attached to tasks that already exist; they never create
or delete one. Without a PullRequestLink every action is a no-op.

    closed / reopened  -> record merged (never cleared), then move the task
                          to the open lane if the PR state is "open",
                          otherwise to the done lane
    edited             -> refresh the link's cached title/body only
    assigned           -> as for issues
    unassigned         -> as for issues
"""

import logging
from typing import Optional

from tasksync.sync.base import TaskSyncHandler
from tasksync.sync.models import SyncResult
from tasksync.webhook.models import GitHubPullRequest, GitHubUser, PullRequestAction

logger = logging.getLogger(__name__)


class PullRequestSyncHandler(TaskSyncHandler):
    """Applies pull request events to the tasks they are attached to."""

    async def handle(
        self,
        action: Optional[str],
        repository_full_name: str,
        pull_request: GitHubPullRequest,
        assignee: Optional[GitHubUser] = None,
    ) -> SyncResult:
        integration = await self.store.get_integration_by_repository(
            repository_full_name
        )
        if integration is None:
            return SyncResult.not_linked(f"{repository_full_name} is not integrated")

        link = await self.store.get_pull_request_link(
            integration.id, pull_request.number
        )
        if link is None:
            return SyncResult.not_linked(
                f"pull request #{pull_request.number} is not linked"
            )

        try:
            parsed = PullRequestAction(action)
        except ValueError:
            return SyncResult.not_applicable(f"pull request action {action!r}")

        if parsed is PullRequestAction.EDITED:
            link.title = pull_request.title
            link.body = pull_request.body
            if pull_request.branch:
                link.branch = pull_request.branch
            await self.store.update_pull_request_link(link)
            return SyncResult.applied("pull request link updated")

        task = await self.store.get_task(link.task_id)
        if task is None:
            return SyncResult.not_linked(f"task {link.task_id} no longer exists")

        if parsed in (PullRequestAction.CLOSED, PullRequestAction.REOPENED):
            if pull_request.merged and not link.merged:
                link.merged = True
                await self.store.update_pull_request_link(link)
                logger.info(
                    "Pull request merged",
                    extra={
                        "repository": repository_full_name,
                        "pull_number": pull_request.number,
                        "task_id": task.id,
                    },
                )
            return await self.move_task(task, done=not pull_request.is_open)

        if parsed is PullRequestAction.ASSIGNED:
            return await self.assign_task(task, integration, assignee)

        return await self.unassign_task(task)
