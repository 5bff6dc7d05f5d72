"""Push event synchronization driven by commit message directives."""

import logging
from typing import Dict, List

from tasksync.store.models import Task
from tasksync.store.repository import SyncStore
from tasksync.sync.commits import parse_commit_reference
from tasksync.sync.models import SyncResult

logger = logging.getLogger(__name__)


class PushSyncHandler:
    """Moves tasks between the open and done lanes from commit messages.

    References to task numbers that do not exist, or to soft-deleted
    tasks, are skipped without failing the push. Every task that changed
    is returned in the result so its new state can be pushed back to
    GitHub after the delivery has been acknowledged.

    Attributes:
        store: Persistence for integrations and tasks.
    """

    def __init__(self, store: SyncStore):
        self.store = store

    async def handle(
        self,
        repository_full_name: str,
        commit_messages: List[str],
    ) -> SyncResult:
        integration = await self.store.get_integration_by_repository(
            repository_full_name
        )
        if integration is None:
            return SyncResult.not_linked(f"{repository_full_name} is not integrated")

        open_lane = await self.store.get_lane(integration.project_id, done=False)
        done_lane = await self.store.get_lane(integration.project_id, done=True)
        if open_lane is None or done_lane is None:
            logger.warning(
                "Project lacks an open or done lane, push ignored",
                extra={
                    "repository": repository_full_name,
                    "project_id": integration.project_id,
                },
            )
            return SyncResult.no_op("project lacks an open or done lane")

        # Keyed by task id so a task referenced twice is notified once
        updated: Dict[int, Task] = {}
        for message in commit_messages:
            reference = parse_commit_reference(message)
            if reference is None:
                continue

            task = await self.store.find_task_by_number(
                integration.project_id, reference.task_number
            )
            if task is None:
                logger.debug(
                    "Commit references unknown task",
                    extra={
                        "repository": repository_full_name,
                        "task_number": reference.task_number,
                    },
                )
                continue

            task.status_id = open_lane.id if reference.reopen else done_lane.id
            await self.store.update_task(task)
            updated.pop(task.id, None)
            updated[task.id] = task

        if not updated:
            return SyncResult.no_op("no commit referenced a task")

        logger.info(
            "Tasks updated from push",
            extra={
                "repository": repository_full_name,
                "task_numbers": [task.number for task in updated.values()],
            },
        )
        return SyncResult.applied(
            f"{len(updated)} task(s) updated",
            tasks=list(updated.values()),
        )
