"""Installation lifecycle tracking.

Handles the ``installation`` and ``installation_repositories`` events and
resolves GitHub logins to the internal users that own installations.
"""

import logging
from typing import List, Optional

from tasksync.store.repository import SyncStore
from tasksync.sync.models import SyncResult
from tasksync.webhook.models import GitHubRepository, InstallationAction

logger = logging.getLogger(__name__)


class InstallationLifecycleManager:
    """Tracks installation validity keyed by GitHub installation id.

    Attributes:
        store: Persistence for installations and integrations.
    """

    def __init__(self, store: SyncStore):
        self.store = store

    async def handle(self, action: Optional[str], installation_id: int) -> SyncResult:
        """Apply an ``installation`` event action.

        ``suspend`` and ``unsuspend`` toggle the suspended flag. ``deleted``
        removes the installation and the integrations it granted, which
        would otherwise be orphaned.

        Args:
            action: The event action.
            installation_id: GitHub installation id from the payload.
        """
        try:
            parsed = InstallationAction(action)
        except ValueError:
            return SyncResult.not_applicable(f"installation action {action!r}")

        installation = await self.store.get_installation(installation_id)
        if installation is None:
            return SyncResult.not_linked(f"unknown installation {installation_id}")

        if parsed is InstallationAction.SUSPEND:
            await self.store.set_installation_suspended(installation.id, True)
        elif parsed is InstallationAction.UNSUSPEND:
            await self.store.set_installation_suspended(installation.id, False)
        else:
            # Integrations first: the installations table cascades to them
            removed = await self.store.delete_integrations_for_installation(
                installation.id
            )
            await self.store.delete_installation(installation.id)
            logger.info(
                "Installation deleted",
                extra={
                    "installation_id": installation_id,
                    "integrations_removed": removed,
                },
            )
            return SyncResult.applied(
                f"installation deleted, {removed} integration(s) removed"
            )

        logger.info(
            "Installation %s",
            parsed.value,
            extra={"installation_id": installation_id},
        )
        return SyncResult.applied(f"installation {parsed.value}")

    async def remove_repositories(
        self, repositories: Optional[List[GitHubRepository]]
    ) -> SyncResult:
        """Delete the integrations of repositories removed from an installation.

        Repositories that were never integrated are skipped.
        """
        if not repositories:
            return SyncResult.no_op("no repositories removed")

        removed = 0
        for repository in repositories:
            integration = await self.store.get_integration_by_repository(
                repository.full_name
            )
            if integration is None:
                continue
            if await self.store.delete_integration(integration.id):
                removed += 1
                logger.info(
                    "Integration removed with repository",
                    extra={"repository": repository.full_name},
                )

        if removed == 0:
            return SyncResult.not_linked("no removed repository was integrated")
        return SyncResult.applied(f"{removed} integration(s) removed")

    async def resolve_user(self, login: str) -> Optional[int]:
        """Return the internal user owning the installation of a GitHub login."""
        installation = await self.store.find_installation_by_login(login)
        if installation is None:
            return None
        return installation.user_id
