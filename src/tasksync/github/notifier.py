"""Outbound task notifications.

After a push moves tasks between lanes, each task's linked issue on GitHub
is patched with the task's title, description and open/closed state. Pull
requests are only attached to tasks and are never patched from them.

Each task is published independently: one failure is logged and counted,
and never prevents the others from being sent.
"""

import asyncio
import logging
from typing import Iterable, Optional, Protocol, runtime_checkable

from tasksync.events.metrics import SyncMetrics
from tasksync.github.client import GitHubClient
from tasksync.store.models import Task
from tasksync.store.repository import SyncStore

logger = logging.getLogger(__name__)


@runtime_checkable
class TaskPublisher(Protocol):
    """Pushes a task's current state to the external service."""

    async def publish(self, task: Task) -> bool:
        """Return True if something was sent, False if the task has no link."""
        ...


class GitHubTaskPublisher:
    """Publishes task state to the GitHub issue that owns the task.

    Tasks that are only attached to a pull request are skipped.
    """

    def __init__(self, store: SyncStore, client: GitHubClient):
        self.store = store
        self.client = client

    async def publish(self, task: Task) -> bool:
        link = await self.store.get_issue_link_for_task(task.id)
        if link is None:
            return False

        integration = await self.store.get_integration(link.integration_id)
        if integration is None:
            return False

        done_lane = await self.store.get_lane(task.project_id, done=True)
        closed = done_lane is not None and task.status_id == done_lane.id

        await self.client.update_issue(
            integration.owner,
            integration.repository,
            link.issue_number,
            title=task.name,
            body=task.description,
            state="closed" if closed else "open",
        )
        logger.info(
            "Task state published",
            extra={
                "task_id": task.id,
                "repository": integration.repository_full_name,
                "issue_number": link.issue_number,
                "state": "closed" if closed else "open",
            },
        )
        return True


class TaskNotifier:
    """Fans task notifications out concurrently with per-task isolation.

    Attributes:
        publisher: Sends one task's state.
        timeout: Upper bound in seconds for a single task.
        metrics: Optional counters for notification results.
    """

    def __init__(
        self,
        publisher: TaskPublisher,
        timeout: float = 30.0,
        metrics: Optional[SyncMetrics] = None,
    ):
        self.publisher = publisher
        self.timeout = timeout
        self.metrics = metrics

    async def notify(self, tasks: Iterable[Task]) -> int:
        """Publish every task; return how many were sent successfully."""
        results = await asyncio.gather(*(self._notify_one(task) for task in tasks))
        return sum(1 for sent in results if sent)

    async def _notify_one(self, task: Task) -> bool:
        try:
            sent = await asyncio.wait_for(self.publisher.publish(task), self.timeout)
        except Exception as e:
            logger.error(
                "Failed to publish task state",
                extra={"task_id": task.id, "error": str(e) or type(e).__name__},
            )
            self._record("failed")
            return False

        self._record("sent" if sent else "skipped")
        return sent

    def _record(self, result: str) -> None:
        if self.metrics is not None:
            self.metrics.record_notification(result)
