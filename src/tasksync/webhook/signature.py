"""Webhook authentication and payload deserialization.

GitHub signs every delivery with HMAC-SHA256 over the raw request body and
sends the digest in the X-Hub-Signature-256 header as ``sha256=<hex>``.
The signature is checked before the body is parsed, so an unauthenticated
request never reaches the JSON decoder.
"""

import hashlib
import hmac
import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from tasksync.errors import BadRequestError, UnauthorizedError
from tasksync.webhook.models import WebhookPayload

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="

_SIGNATURE_RE = re.compile(r"^sha256=[0-9a-fA-F]{64}$")


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature GitHub would send for body."""
    digest = hmac.new(
        key=secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    body: bytes,
    signature_header: Optional[str],
    secret: str,
) -> None:
    """Verify a webhook delivery signature.

    The comparison uses hmac.compare_digest so its duration does not depend
    on how many leading characters match.

    Args:
        body: Raw request body bytes.
        signature_header: Value of the X-Hub-Signature-256 header.
        secret: Shared webhook secret.

    Raises:
        UnauthorizedError: If the header is missing, malformed or does not
            match the computed signature.
    """
    if not signature_header:
        logger.warning("Webhook delivery without signature header")
        raise UnauthorizedError("Missing signature")

    signature_header = signature_header.strip()
    if not _SIGNATURE_RE.match(signature_header):
        logger.warning("Malformed webhook signature header")
        raise UnauthorizedError("Malformed signature")

    expected = compute_signature(body, secret)
    if not hmac.compare_digest(
        expected.encode("ascii"),
        signature_header.lower().encode("ascii"),
    ):
        logger.warning(
            "Webhook signature mismatch",
            extra={"body_length": len(body)},
        )
        raise UnauthorizedError("Signature mismatch")


def parse_payload(body: bytes) -> WebhookPayload:
    """Deserialize an authenticated webhook body.

    Raises:
        BadRequestError: If the body is not valid JSON, is not a JSON
            object, or does not match the payload schema.
    """
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise BadRequestError(f"Invalid JSON body: {e}") from e

    if not isinstance(data, dict):
        raise BadRequestError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    try:
        return WebhookPayload.model_validate(data)
    except ValidationError as e:
        raise BadRequestError(
            f"Invalid webhook payload: {e.error_count()} validation error(s)"
        ) from e
