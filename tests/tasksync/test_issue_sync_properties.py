"""Property-based tests for issue event synchronization.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

from hypothesis import given, settings, strategies as st

from helpers import REPOSITORY, SYSTEM_USER_ID, make_seeded, run_async
from tasksync.sync.installations import InstallationLifecycleManager
from tasksync.sync.issues import IssueSyncHandler
from tasksync.sync.models import SyncOutcome
from tasksync.webhook.models import GitHubIssue


issue_numbers = st.integers(min_value=1, max_value=10**6)


class TestIssueOpenedProperties:
    """Redelivering ``opened`` any number of times yields one task and one link."""

    @settings(max_examples=100)
    @given(
        number=issue_numbers,
        deliveries=st.integers(min_value=1, max_value=5),
        title=st.text(max_size=40),
    )
    def test_opened_is_idempotent(self, number: int, deliveries: int, title: str):
        seeded = make_seeded()
        handler = IssueSyncHandler(
            seeded.store,
            seeded.store,
            InstallationLifecycleManager(seeded.store),
            system_user_id=SYSTEM_USER_ID,
        )
        issue = GitHubIssue(number=number, title=title)

        outcomes = [
            run_async(handler.handle("opened", REPOSITORY, issue)).outcome
            for _ in range(deliveries)
        ]

        assert outcomes[0] == SyncOutcome.APPLIED
        assert all(o == SyncOutcome.NO_OP for o in outcomes[1:])
        assert len(seeded.store.tasks) == 1
        assert len(seeded.store.issue_links) == 1
        assert next(iter(seeded.store.tasks.values())).name == title

    @settings(max_examples=100)
    @given(numbers=st.lists(issue_numbers, min_size=1, max_size=8, unique=True))
    def test_distinct_issues_get_distinct_task_numbers(self, numbers):
        seeded = make_seeded()
        handler = IssueSyncHandler(
            seeded.store,
            seeded.store,
            InstallationLifecycleManager(seeded.store),
            system_user_id=SYSTEM_USER_ID,
        )

        for number in numbers:
            run_async(handler.handle("opened", REPOSITORY, GitHubIssue(number=number)))

        task_numbers = sorted(t.number for t in seeded.store.tasks.values())
        assert task_numbers == list(range(1, len(numbers) + 1))
