"""Unit tests for the error taxonomy."""

import pytest

from tasksync import errors
from tasksync.errors import (
    BadRequestError,
    LinkConflictError,
    NotLinkedError,
    SyncError,
    UnauthorizedError,
)


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error_class,status_code",
        [
            (UnauthorizedError, 401),
            (BadRequestError, 400),
            (NotLinkedError, 404),
            (LinkConflictError, 409),
        ],
    )
    def test_status_codes(self, error_class, status_code):
        error = error_class("nope")

        assert isinstance(error, SyncError)
        assert error.status_code == status_code
        assert error.message == "nope"

    def test_unsupported_actions_have_no_exception_class(self):
        assert not hasattr(errors, "NotApplicableError")

    def test_link_conflict_carries_context(self):
        error = LinkConflictError("taken", task_id=3, external_number=12)

        assert (error.task_id, error.external_number) == (3, 12)
