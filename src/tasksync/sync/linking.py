"""Linking entry points used by the task REST layer.

Unlike the webhook handlers, these raise on failure: the caller is a user
action that needs to know why a link could not be made.
"""

import logging

from tasksync.errors import LinkConflictError, NotLinkedError
from tasksync.github.client import GitHubClient
from tasksync.store.models import (
    Integration,
    IssueLink,
    NewIssueLink,
    NewPullRequestLink,
    PullRequestLink,
    Task,
)
from tasksync.store.repository import SyncStore
from tasksync.webhook.models import GitHubIssue, GitHubPullRequest

logger = logging.getLogger(__name__)


class LinkService:
    """Creates and removes links between tasks and GitHub issues or PRs.

    Attributes:
        store: Persistence for integrations and links.
        client: GitHub API client used to read and create issues.
    """

    def __init__(self, store: SyncStore, client: GitHubClient):
        self.store = store
        self.client = client

    async def _integration_for(self, task: Task) -> Integration:
        integration = await self.store.get_integration_for_project(task.project_id)
        if integration is None:
            raise NotLinkedError(
                f"Project {task.project_id} has no GitHub integration"
            )
        return integration

    async def _ensure_no_issue_link(self, task: Task) -> None:
        if await self.store.get_issue_link_for_task(task.id) is not None:
            raise LinkConflictError(
                f"Task {task.id} already has an issue link", task_id=task.id
            )

    async def link_issue(self, task: Task, issue_number: int) -> IssueLink:
        """Link a task to an existing issue in its project's repository.

        Raises:
            NotLinkedError: If the task's project has no integration.
            LinkConflictError: If the task or the issue is already linked.
            GitHubAPIError: If the issue cannot be read from GitHub.
        """
        integration = await self._integration_for(task)
        await self._ensure_no_issue_link(task)

        data = await self.client.get_issue(
            integration.owner, integration.repository, issue_number
        )
        issue = GitHubIssue.model_validate(data)
        link = await self.store.create_issue_link(
            NewIssueLink(
                task_id=task.id,
                integration_id=integration.id,
                issue_number=issue.number,
                url=issue.html_url,
                title=issue.title,
                body=issue.body,
            )
        )
        logger.info(
            "Task linked to issue",
            extra={
                "task_id": task.id,
                "repository": integration.repository_full_name,
                "issue_number": issue.number,
            },
        )
        return link

    async def create_issue(self, task: Task) -> IssueLink:
        """Open a new issue from the task's name and description and link it.

        Raises:
            NotLinkedError: If the task's project has no integration.
            LinkConflictError: If the task already has an issue link.
        """
        integration = await self._integration_for(task)
        await self._ensure_no_issue_link(task)

        data = await self.client.create_issue(
            integration.owner,
            integration.repository,
            title=task.name,
            body=task.description,
        )
        issue = GitHubIssue.model_validate(data)
        return await self.store.create_issue_link(
            NewIssueLink(
                task_id=task.id,
                integration_id=integration.id,
                issue_number=issue.number,
                url=issue.html_url,
                title=issue.title,
                body=issue.body,
            )
        )

    async def link_pull_request(self, task: Task, pull_number: int) -> PullRequestLink:
        """Attach an existing pull request to a task.

        Raises:
            NotLinkedError: If the task's project has no integration.
            LinkConflictError: If the task or the pull request is already linked.
        """
        integration = await self._integration_for(task)
        if await self.store.get_pull_request_link_for_task(task.id) is not None:
            raise LinkConflictError(
                f"Task {task.id} already has a pull request link", task_id=task.id
            )

        data = await self.client.get_pull_request(
            integration.owner, integration.repository, pull_number
        )
        pull_request = GitHubPullRequest.model_validate(data)
        link = await self.store.create_pull_request_link(
            NewPullRequestLink(
                task_id=task.id,
                integration_id=integration.id,
                pull_number=pull_request.number,
                url=pull_request.html_url,
                title=pull_request.title,
                body=pull_request.body,
                branch=pull_request.branch,
                merged=pull_request.merged,
            )
        )
        logger.info(
            "Task linked to pull request",
            extra={
                "task_id": task.id,
                "repository": integration.repository_full_name,
                "pull_number": pull_request.number,
            },
        )
        return link

    async def unlink(self, task: Task) -> bool:
        """Remove the task's issue and pull request links, keeping the task.

        Returns:
            True if at least one link was removed.
        """
        removed = False
        issue_link = await self.store.get_issue_link_for_task(task.id)
        if issue_link is not None:
            removed = await self.store.delete_issue_link(issue_link.id) or removed
        pull_link = await self.store.get_pull_request_link_for_task(task.id)
        if pull_link is not None:
            removed = await self.store.delete_pull_request_link(pull_link.id) or removed
        return removed
