"""Unit tests for commit message directive parsing."""

from tasksync.sync.commits import CommitReference, parse_commit_reference


class TestParseCommitReference:
    def test_bare_reference_closes(self):
        assert parse_commit_reference("fix redirect !1") == CommitReference(
            task_number=1, reopen=False
        )

    def test_close_prefix_closes(self):
        assert parse_commit_reference("close!12") == CommitReference(
            task_number=12, reopen=False
        )

    def test_reopen_prefix_reopens(self):
        assert parse_commit_reference("revert reopen!3") == CommitReference(
            task_number=3, reopen=True
        )

    def test_reference_inside_word(self):
        assert parse_commit_reference("wip-!42-done").task_number == 42

    def test_first_directive_wins(self):
        reference = parse_commit_reference("!5 and then reopen!6")
        assert reference.task_number == 5
        assert reference.reopen is False

    def test_no_directive(self):
        assert parse_commit_reference("refactor parser") is None

    def test_bang_without_digits(self):
        assert parse_commit_reference("ship it!") is None

    def test_empty_message(self):
        assert parse_commit_reference("") is None

    def test_non_ascii_digits_ignored(self):
        assert parse_commit_reference("close!٣") is None

    def test_leading_zeros(self):
        assert parse_commit_reference("!007").task_number == 7
