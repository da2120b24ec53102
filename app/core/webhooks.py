"""Svix webhook signature verification (used by Clerk).

Svix signs ``{svix-id}.{svix-timestamp}.{body}`` with HMAC-SHA256 and sends
the base64 digest in the ``svix-signature`` header as space-separated
``v1,<signature>`` entries (more than one during secret rotation).

- Comparisons use hmac.compare_digest() (constant time)
- Timestamps outside the tolerance window are rejected (replay protection)
- Any failure raises WebhookVerificationError, never returns a partial result
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Mapping

logger = logging.getLogger(__name__)

SECRET_PREFIX = "whsec_"
DEFAULT_TOLERANCE_SECONDS = 300

SVIX_ID_HEADER = "svix-id"
SVIX_TIMESTAMP_HEADER = "svix-timestamp"
SVIX_SIGNATURE_HEADER = "svix-signature"
SVIX_HEADERS = (SVIX_ID_HEADER, SVIX_TIMESTAMP_HEADER, SVIX_SIGNATURE_HEADER)


class WebhookVerificationError(Exception):
    """The message could not be proven to come from the provider."""


def decode_secret(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise WebhookVerificationError("Webhook secret is not valid base64") from exc


def sign(secret: str, msg_id: str, timestamp: int, payload: str) -> str:
    """Return the ``v1,<signature>`` header value for a payload."""
    key = decode_secret(secret)
    to_sign = f"{msg_id}.{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(key, to_sign, hashlib.sha256).digest()
    return f"v1,{base64.b64encode(digest).decode('utf-8')}"


def _check_timestamp(timestamp_header: str, tolerance: int) -> int:
    try:
        timestamp = int(timestamp_header)
    except (TypeError, ValueError) as exc:
        raise WebhookVerificationError("Invalid signature headers") from exc

    now = int(time.time())
    if timestamp < now - tolerance:
        raise WebhookVerificationError("Message timestamp too old")
    if timestamp > now + tolerance:
        raise WebhookVerificationError("Message timestamp too new")
    return timestamp


def verify_webhook(
    secret: str,
    payload: str,
    headers: Mapping[str, str],
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> dict[str, Any]:
    """Verify a Svix-signed payload and return it parsed.

    Args:
        secret: Signing secret, with or without the ``whsec_`` prefix
        payload: Exact string that was signed
        headers: Mapping holding the three svix headers (lowercase keys)
        tolerance: Allowed distance of svix-timestamp from now, in seconds

    Raises:
        WebhookVerificationError: on missing headers, stale timestamps or a
            signature mismatch
    """
    msg_id = headers.get(SVIX_ID_HEADER)
    timestamp_header = headers.get(SVIX_TIMESTAMP_HEADER)
    signature_header = headers.get(SVIX_SIGNATURE_HEADER)
    if not msg_id or not timestamp_header or not signature_header:
        raise WebhookVerificationError("Missing required headers")

    timestamp = _check_timestamp(timestamp_header, tolerance)
    expected = sign(secret, msg_id, timestamp, payload).split(",", 1)[1]

    for versioned in signature_header.split(" "):
        version, _, signature = versioned.partition(",")
        if version != "v1":
            continue
        if hmac.compare_digest(expected, signature):
            return json.loads(payload)

    logger.debug("No matching v1 signature for message %s", msg_id)
    raise WebhookVerificationError("No matching signature found")
