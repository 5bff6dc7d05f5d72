"""Routes authenticated webhook deliveries to their sync handlers.

The X-GitHub-Event header selects the handler from a fixed table. Events
outside the table are acknowledged as not applicable so GitHub does not
retry them.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from tasksync.errors import BadRequestError
from tasksync.events.metrics import SyncMetrics
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.issues import IssueSyncHandler
from tasksync.sync.models import SyncResult
from tasksync.sync.pulls import PullRequestSyncHandler
from tasksync.sync.push import PushSyncHandler
from tasksync.webhook.models import EventType, WebhookPayload

logger = logging.getLogger(__name__)

Route = Callable[[WebhookPayload], Awaitable[SyncResult]]


class EventDispatcher:
    """Dispatches webhook payloads by event type.

    Attributes:
        issues: Handler for ``issues`` events.
        pulls: Handler for ``pull_request`` events.
        push: Handler for ``push`` events.
        installations: Handler for ``installation`` and
            ``installation_repositories`` events.
        metrics: Optional counters for dispatched deliveries.
    """

    def __init__(
        self,
        issues: IssueSyncHandler,
        pulls: PullRequestSyncHandler,
        push: PushSyncHandler,
        installations: InstallationLifecycleManager,
        metrics: Optional[SyncMetrics] = None,
    ):
        self.issues = issues
        self.pulls = pulls
        self.push = push
        self.installations = installations
        self.metrics = metrics
        self._routes: Dict[EventType, Route] = {
            EventType.INSTALLATION_REPOSITORIES: self._installation_repositories,
            EventType.ISSUES: self._issues,
            EventType.PUSH: self._push,
            EventType.INSTALLATION: self._installation,
            EventType.PULL_REQUEST: self._pull_request,
        }

    async def dispatch(self, event: str, payload: WebhookPayload) -> SyncResult:
        """Handle one delivery and return how it was resolved.

        Raises:
            BadRequestError: If the payload lacks a section the event needs.
        """
        try:
            route = self._routes[EventType(event)]
        except ValueError:
            result = SyncResult.not_applicable(f"event {event!r} is not handled")
        else:
            result = await route(payload)

        logger.info(
            "Webhook dispatched",
            extra={
                "event": event,
                "action": payload.action,
                "outcome": result.outcome.value,
                "detail": result.detail,
            },
        )
        if self.metrics is not None:
            self.metrics.record_delivery(event, result.outcome.value)
        return result

    async def _issues(self, payload: WebhookPayload) -> SyncResult:
        if payload.issue is None or payload.repository is None:
            raise BadRequestError("issues event requires issue and repository")
        return await self.issues.handle(
            payload.action,
            payload.repository.full_name,
            payload.issue,
            assignee=payload.assignee,
        )

    async def _pull_request(self, payload: WebhookPayload) -> SyncResult:
        if payload.pull_request is None or payload.repository is None:
            raise BadRequestError(
                "pull_request event requires pull_request and repository"
            )
        return await self.pulls.handle(
            payload.action,
            payload.repository.full_name,
            payload.pull_request,
            assignee=payload.assignee,
        )

    async def _push(self, payload: WebhookPayload) -> SyncResult:
        if payload.repository is None:
            raise BadRequestError("push event requires repository")
        return await self.push.handle(
            payload.repository.full_name, payload.commit_messages
        )

    async def _installation(self, payload: WebhookPayload) -> SyncResult:
        if payload.installation is None:
            raise BadRequestError("installation event requires installation")
        return await self.installations.handle(payload.action, payload.installation.id)

    async def _installation_repositories(self, payload: WebhookPayload) -> SyncResult:
        return await self.installations.remove_repositories(
            payload.repositories_removed
        )
