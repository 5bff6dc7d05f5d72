"""Unit tests for the in-memory store's link invariants."""

import pytest

from helpers import run_async
from tasksync.errors import LinkConflictError
from tasksync.store.models import NewIssueLink, NewPullRequestLink


def _issue_link(seeded, task_id: int, number: int) -> NewIssueLink:
    return NewIssueLink(
        task_id=task_id, integration_id=seeded.integration.id, issue_number=number
    )


class TestIssueLinkUniqueness:
    def test_issue_cannot_be_linked_twice(self, seeded):
        first = seeded.store.add_task(seeded.project.id)
        second = seeded.store.add_task(seeded.project.id)
        run_async(seeded.store.create_issue_link(_issue_link(seeded, first.id, 4)))

        with pytest.raises(LinkConflictError) as exc_info:
            run_async(seeded.store.create_issue_link(_issue_link(seeded, second.id, 4)))
        assert exc_info.value.external_number == 4

    def test_task_cannot_have_two_issue_links(self, seeded):
        task = seeded.store.add_task(seeded.project.id)
        run_async(seeded.store.create_issue_link(_issue_link(seeded, task.id, 4)))

        with pytest.raises(LinkConflictError):
            run_async(seeded.store.create_issue_link(_issue_link(seeded, task.id, 5)))

    def test_pull_request_cannot_be_linked_twice(self, seeded):
        first = seeded.store.add_task(seeded.project.id)
        second = seeded.store.add_task(seeded.project.id)
        link = NewPullRequestLink(
            task_id=first.id, integration_id=seeded.integration.id, pull_number=8
        )
        run_async(seeded.store.create_pull_request_link(link))

        with pytest.raises(LinkConflictError):
            run_async(
                seeded.store.create_pull_request_link(
                    link.model_copy(update={"task_id": second.id})
                )
            )

    def test_repository_integrated_once(self, seeded):
        with pytest.raises(LinkConflictError):
            seeded.store.add_integration(
                seeded.project.id, seeded.installation.id, "org/repo"
            )


class TestTaskQueries:
    def test_find_by_number_skips_deleted(self, seeded):
        seeded.store.add_task(seeded.project.id, deleted=True)
        assert run_async(seeded.store.find_task_by_number(seeded.project.id, 1)) is None

    def test_returned_tasks_are_copies(self, seeded):
        task = seeded.store.add_task(seeded.project.id, name="Original")
        fetched = run_async(seeded.store.get_task(task.id))
        fetched.name = "Changed"
        assert seeded.store.tasks[task.id].name == "Original"

    def test_lanes_by_kind(self, seeded):
        open_lane = run_async(seeded.store.get_lane(seeded.project.id, done=False))
        done_lane = run_async(seeded.store.get_lane(seeded.project.id, done=True))
        assert open_lane.name == "To do"
        assert done_lane.name == "Done"

    def test_deleting_issue_link_and_task_drops_pull_request_link(self, seeded):
        task = seeded.store.add_task(seeded.project.id)
        issue_link = run_async(
            seeded.store.create_issue_link(_issue_link(seeded, task.id, 4))
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

        run_async(seeded.store.delete_issue_link_and_task(issue_link))

        assert seeded.store.tasks == {}
        assert seeded.store.pull_request_links == {}
