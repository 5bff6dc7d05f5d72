"""Property-based tests for webhook signature verification.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import pytest
from hypothesis import assume, given, settings, strategies as st

from tasksync.errors import UnauthorizedError
from tasksync.webhook.signature import compute_signature, verify_signature


secrets = st.text(min_size=1, max_size=64)
bodies = st.binary(max_size=2048)


class TestSignatureProperties:
    """Only the exact body signed with the shared secret is accepted."""

    @settings(max_examples=100)
    @given(body=bodies, secret=secrets)
    def test_own_signature_always_verifies(self, body: bytes, secret: str):
        verify_signature(body, compute_signature(body, secret), secret)

    @settings(max_examples=100)
    @given(body=bodies, other=bodies, secret=secrets)
    def test_signature_of_another_body_rejected(
        self, body: bytes, other: bytes, secret: str
    ):
        assume(body != other)
        with pytest.raises(UnauthorizedError):
            verify_signature(body, compute_signature(other, secret), secret)

    @settings(max_examples=100)
    @given(body=bodies, secret=secrets, other_secret=secrets)
    def test_signature_with_another_secret_rejected(
        self, body: bytes, secret: str, other_secret: str
    ):
        assume(secret != other_secret)
        with pytest.raises(UnauthorizedError):
            verify_signature(body, compute_signature(body, other_secret), secret)

    @settings(max_examples=100)
    @given(body=bodies, header=st.text(max_size=80))
    def test_arbitrary_header_rejected(self, body: bytes, header: str):
        assume(header.strip().lower() != compute_signature(body, "s"))
        with pytest.raises(UnauthorizedError):
            verify_signature(body, header, "s")
