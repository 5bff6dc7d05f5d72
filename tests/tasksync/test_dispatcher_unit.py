"""Unit tests for webhook event routing."""

import pytest
from prometheus_client import CollectorRegistry

from helpers import REPOSITORY, run_async
from tasksync.errors import BadRequestError
from tasksync.events.metrics import SyncMetrics
from tasksync.main import build_dispatcher
from tasksync.sync.models import SyncOutcome
from tasksync.webhook.models import WebhookPayload


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def dispatcher(seeded, sync_settings, registry):
    return build_dispatcher(seeded.store, sync_settings, SyncMetrics(registry))


def _payload(**data) -> WebhookPayload:
    return WebhookPayload.model_validate(data)


class TestEventRouting:
    def test_issues_event_reaches_issue_handler(self, dispatcher, seeded):
        payload = _payload(
            action="opened",
            issue={"number": 1, "title": "Bug"},
            repository={"full_name": REPOSITORY},
        )

        result = run_async(dispatcher.dispatch("issues", payload))

        assert result.outcome == SyncOutcome.APPLIED
        assert len(seeded.store.tasks) == 1

    def test_push_event_reaches_push_handler(self, dispatcher, seeded):
        task = seeded.store.add_task(seeded.project.id)
        payload = _payload(
            repository={"full_name": REPOSITORY},
            commits=[{"id": "abc", "message": "done !1"}],
        )

        result = run_async(dispatcher.dispatch("push", payload))

        assert result.outcome == SyncOutcome.APPLIED
        assert [t.id for t in result.tasks] == [task.id]

    def test_pull_request_without_link_is_not_linked(self, dispatcher):
        payload = _payload(
            action="closed",
            pull_request={"number": 2, "state": "closed"},
            repository={"full_name": REPOSITORY},
        )
        result = run_async(dispatcher.dispatch("pull_request", payload))
        assert result.outcome == SyncOutcome.NOT_LINKED

    def test_installation_event_reaches_lifecycle_manager(self, dispatcher, seeded):
        payload = _payload(action="suspend", installation={"id": 1})

        result = run_async(dispatcher.dispatch("installation", payload))

        assert result.outcome == SyncOutcome.APPLIED
        assert seeded.store.installations[seeded.installation.id].suspended is True

    def test_installation_repositories_removes_integrations(self, dispatcher, seeded):
        payload = _payload(
            action="removed",
            installation={"id": 1},
            repositories_removed=[{"full_name": REPOSITORY}],
        )

        run_async(dispatcher.dispatch("installation_repositories", payload))

        assert seeded.store.integrations == {}

    def test_installation_repositories_without_list_is_no_op(self, dispatcher):
        payload = _payload(action="added", installation={"id": 1})
        result = run_async(dispatcher.dispatch("installation_repositories", payload))
        assert result.outcome == SyncOutcome.NO_OP

    @pytest.mark.parametrize("event", ["ping", "star", ""])
    def test_unknown_event_is_not_applicable(self, dispatcher, event):
        result = run_async(dispatcher.dispatch(event, _payload()))
        assert result.outcome == SyncOutcome.NOT_APPLICABLE


class TestMissingSections:
    @pytest.mark.parametrize(
        "event,data",
        [
            ("issues", {"action": "opened", "repository": {"full_name": REPOSITORY}}),
            ("issues", {"action": "opened", "issue": {"number": 1}}),
            ("pull_request", {"action": "closed", "repository": {"full_name": REPOSITORY}}),
            ("push", {"commits": []}),
            ("installation", {"action": "deleted"}),
        ],
    )
    def test_missing_section_is_bad_request(self, dispatcher, event, data):
        with pytest.raises(BadRequestError):
            run_async(dispatcher.dispatch(event, _payload(**data)))


class TestDispatchMetrics:
    def test_outcome_counted_per_event(self, dispatcher, registry):
        run_async(dispatcher.dispatch("ping", _payload()))
        run_async(dispatcher.dispatch("ping", _payload()))

        assert registry.get_sample_value(
            "tasksync_webhook_deliveries_total",
            {"event": "ping", "outcome": "not_applicable"},
        ) == 2.0
