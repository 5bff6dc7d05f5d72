"""Unit tests for outbound task notifications."""

import asyncio
import json

import httpx
from prometheus_client import CollectorRegistry

from helpers import run_async
from tasksync.events.metrics import SyncMetrics
from tasksync.github.client import GitHubAPIError, GitHubClient
from tasksync.github.notifier import GitHubTaskPublisher, TaskNotifier
from tasksync.store.models import NewIssueLink, NewPullRequestLink, Task


class FlakyPublisher:
    """Fails for the given task ids and records the rest."""

    def __init__(self, failing):
        self.failing = set(failing)
        self.published = []

    async def publish(self, task: Task) -> bool:
        if task.id in self.failing:
            raise GitHubAPIError("boom", status_code=500)
        self.published.append(task.id)
        return True


class SlowPublisher:
    async def publish(self, task: Task) -> bool:
        await asyncio.sleep(1)
        return True


class TestTaskNotifier:
    def test_one_failure_does_not_stop_others(self, seeded):
        tasks = [seeded.store.add_task(seeded.project.id) for _ in range(3)]
        publisher = FlakyPublisher(failing=[tasks[1].id])
        registry = CollectorRegistry()
        notifier = TaskNotifier(publisher, metrics=SyncMetrics(registry))

        sent = run_async(notifier.notify(tasks))

        assert sent == 2
        assert sorted(publisher.published) == sorted([tasks[0].id, tasks[2].id])
        assert registry.get_sample_value(
            "tasksync_notifications_total", {"result": "failed"}
        ) == 1.0
        assert registry.get_sample_value(
            "tasksync_notifications_total", {"result": "sent"}
        ) == 2.0

    def test_timeout_counts_as_failure(self, seeded):
        task = seeded.store.add_task(seeded.project.id)
        notifier = TaskNotifier(SlowPublisher(), timeout=0.01)

        assert run_async(notifier.notify([task])) == 0

    def test_no_tasks(self):
        assert run_async(TaskNotifier(FlakyPublisher([])).notify([])) == 0


def _recording_client(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={})

    return GitHubClient(
        token="ghs_test", base_delay=0.0, transport=httpx.MockTransport(handler)
    )


class TestGitHubTaskPublisher:
    def test_done_task_closes_linked_issue(self, seeded):
        task = seeded.store.add_task(
            seeded.project.id, name="Fix login", description="Body", done=True
        )
        run_async(
            seeded.store.create_issue_link(
                NewIssueLink(
                    task_id=task.id,
                    integration_id=seeded.integration.id,
                    issue_number=4,
                )
            )
        )
        requests = []
        publisher = GitHubTaskPublisher(seeded.store, _recording_client(requests))

        assert run_async(publisher.publish(task)) is True

        assert requests[0].method == "PATCH"
        assert requests[0].url.path == "/repos/org/repo/issues/4"
        assert json.loads(requests[0].content) == {
            "title": "Fix login",
            "body": "Body",
            "state": "closed",
        }

    def test_task_with_only_pull_request_link_is_skipped(self, seeded):
        task = seeded.store.add_task(
            seeded.project.id, name="Internal task name", done=True
        )
        run_async(
            seeded.store.create_pull_request_link(
                NewPullRequestLink(
                    task_id=task.id,
                    integration_id=seeded.integration.id,
                    pull_number=9,
                    title="PR title",
                )
            )
        )
        requests = []
        publisher = GitHubTaskPublisher(seeded.store, _recording_client(requests))

        assert run_async(publisher.publish(task)) is False
        assert requests == []

    def test_task_with_issue_and_pull_request_patches_issue_only(self, seeded):
        task = seeded.store.add_task(seeded.project.id)
        run_async(
            seeded.store.create_issue_link(
                NewIssueLink(
                    task_id=task.id,
                    integration_id=seeded.integration.id,
                    issue_number=4,
                )
            )
        )
        run_async(
            seeded.store.create_pull_request_link(
                NewPullRequestLink(
                    task_id=task.id,
                    integration_id=seeded.integration.id,
                    pull_number=9,
                )
            )
        )
        requests = []
        publisher = GitHubTaskPublisher(seeded.store, _recording_client(requests))

        assert run_async(publisher.publish(task)) is True

        assert [request.url.path for request in requests] == [
            "/repos/org/repo/issues/4"
        ]
        assert json.loads(requests[0].content)["state"] == "open"

    def test_unlinked_task_is_skipped(self, seeded):
        task = seeded.store.add_task(seeded.project.id)
        requests = []
        publisher = GitHubTaskPublisher(seeded.store, _recording_client(requests))

        assert run_async(publisher.publish(task)) is False
        assert requests == []
