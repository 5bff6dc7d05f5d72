"""Unit tests for installation lifecycle handling."""

from helpers import INSTALLATION_ID, MEMBER_USER_ID, REPOSITORY, Seeded, run_async
from tasksync.store import InMemorySyncStore
from tasksync.store.models import NewIssueLink
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.models import SyncOutcome
from tasksync.webhook.models import GitHubRepository


def _manager(seeded: Seeded) -> InstallationLifecycleManager:
    return InstallationLifecycleManager(seeded.store)


class CascadingStore(InMemorySyncStore):
    """Drops an installation's integrations with it, as the foreign key does."""

    async def delete_installation(self, installation_pk: int) -> bool:
        for integration in list(self.integrations.values()):
            if integration.installation_id == installation_pk:
                del self.integrations[integration.id]
        return await super().delete_installation(installation_pk)


class TestInstallationEvents:
    def test_suspend_and_unsuspend(self, seeded):
        manager = _manager(seeded)
        pk = seeded.installation.id

        assert run_async(manager.handle("suspend", INSTALLATION_ID)).outcome == SyncOutcome.APPLIED
        assert seeded.store.installations[pk].suspended is True

        run_async(manager.handle("unsuspend", INSTALLATION_ID))
        assert seeded.store.installations[pk].suspended is False

    def test_deleted_removes_installation_and_its_integrations(self, seeded):
        task = seeded.store.add_task(seeded.project.id)
        run_async(
            seeded.store.create_issue_link(
                NewIssueLink(
                    task_id=task.id,
                    integration_id=seeded.integration.id,
                    issue_number=3,
                )
            )
        )

        result = run_async(_manager(seeded).handle("deleted", INSTALLATION_ID))

        assert result.outcome == SyncOutcome.APPLIED
        assert seeded.store.installations == {}
        assert seeded.store.integrations == {}
        assert seeded.store.issue_links == {}
        # Tasks outlive their integration
        assert task.id in seeded.store.tasks

    def test_deleted_counts_integrations_before_cascade(self):
        store = CascadingStore()
        project = store.add_project()
        installation = store.add_installation(
            INSTALLATION_ID, user_id=MEMBER_USER_ID, github_login="username"
        )
        store.add_integration(project.id, installation.id, REPOSITORY)
        store.add_integration(project.id, installation.id, "org/other")

        result = run_async(
            InstallationLifecycleManager(store).handle("deleted", INSTALLATION_ID)
        )

        assert result.outcome == SyncOutcome.APPLIED
        assert result.detail == "installation deleted, 2 integration(s) removed"
        assert store.installations == {}
        assert store.integrations == {}

    def test_unknown_installation_is_not_linked(self, seeded):
        result = run_async(_manager(seeded).handle("suspend", 4242))

        assert result.outcome == SyncOutcome.NOT_LINKED
        assert seeded.store.installations[seeded.installation.id].suspended is False

    def test_unknown_action_is_not_applicable(self, seeded):
        result = run_async(_manager(seeded).handle("created", INSTALLATION_ID))
        assert result.outcome == SyncOutcome.NOT_APPLICABLE


class TestRemovedRepositories:
    def test_removes_integration_of_removed_repository(self, seeded):
        result = run_async(
            _manager(seeded).remove_repositories([GitHubRepository(full_name=REPOSITORY)])
        )

        assert result.outcome == SyncOutcome.APPLIED
        assert seeded.store.integrations == {}

    def test_unknown_repositories_are_skipped(self, seeded):
        result = run_async(
            _manager(seeded).remove_repositories([GitHubRepository(full_name="x/y")])
        )

        assert result.outcome == SyncOutcome.NOT_LINKED
        assert len(seeded.store.integrations) == 1

    def test_mixed_list_removes_only_known(self, seeded):
        result = run_async(
            _manager(seeded).remove_repositories(
                [GitHubRepository(full_name="x/y"), GitHubRepository(full_name=REPOSITORY)]
            )
        )

        assert result.outcome == SyncOutcome.APPLIED
        assert seeded.store.integrations == {}

    def test_missing_list_is_no_op(self, seeded):
        assert run_async(_manager(seeded).remove_repositories(None)).outcome == SyncOutcome.NO_OP
        assert run_async(_manager(seeded).remove_repositories([])).outcome == SyncOutcome.NO_OP


class TestResolveUser:
    def test_known_login(self, seeded):
        assert run_async(_manager(seeded).resolve_user("username")) == MEMBER_USER_ID

    def test_unknown_login(self, seeded):
        assert run_async(_manager(seeded).resolve_user("nobody")) is None
