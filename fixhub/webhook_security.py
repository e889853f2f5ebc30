"""
Webhook Security Module

Signature verification for the payment gateway webhook:
- Constant-time signature comparison
- Timestamp validation (rejects replayed deliveries)
- Verification runs over the raw request body, before any JSON parsing
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import Request

from .errors import NotAuthenticated

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300

PAYMONGO_SIGNATURE_HEADER = "Paymongo-Signature"


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_timestamp(
    timestamp: Optional[str],
    max_age: int = MAX_WEBHOOK_AGE_SECONDS,
    now: Optional[float] = None,
) -> bool:
    """
    Verify webhook timestamp is within acceptable range.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds
        now: Current time override

    Returns:
        True if timestamp is valid, False otherwise
    """
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    current_time = int(now if now is not None else time.time())
    age = abs(current_time - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def parse_signature_header(header: str) -> dict[str, str]:
    """Split 't=..,te=..,li=..' into its parts; malformed items are ignored"""
    elements = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if sep and key:
            elements[key] = value
    return elements


def verify_paymongo_signature(
    signature_header: Optional[str],
    raw_body: bytes,
    secret: Optional[str],
    now: Optional[float] = None,
) -> bool:
    """
    Check a PayMongo webhook signature.

    PayMongo signs ``<timestamp>.<raw body>`` with HMAC-SHA256 and sends
    ``t=<timestamp>,te=<test signature>,li=<live signature>``; exactly one
    of te/li is filled depending on the mode of the event.
    """
    if not secret:
        logger.error("❌ PAYMONGO_WEBHOOK_SECRET not configured")
        return False
    if not signature_header:
        logger.warning("🚫 PayMongo webhook missing signature header")
        return False

    elements = parse_signature_header(signature_header)
    timestamp = elements.get("t")
    signatures = [s for s in (elements.get("te"), elements.get("li")) if s]

    if not timestamp or not signatures:
        logger.warning("🚫 PayMongo webhook invalid signature format")
        return False

    if not verify_timestamp(timestamp, now=now):
        return False

    signed_payload = f"{timestamp}.".encode() + raw_body
    expected_signature = compute_hmac_sha256(secret, signed_payload)

    if not any(constant_time_compare(expected_signature, s) for s in signatures):
        logger.warning("🚫 PayMongo webhook signature mismatch")
        return False

    logger.debug("✅ PayMongo webhook signature verified")
    return True


async def verify_paymongo_webhook(request: Request, secret: Optional[str]) -> bytes:
    """
    Verify the signature of an incoming PayMongo webhook.

    Returns:
        The raw request body

    Raises:
        NotAuthenticated: If the signature is missing, stale or wrong
    """
    # Get raw body BEFORE any parsing - this is critical
    raw_body = await request.body()
    signature_header = request.headers.get(PAYMONGO_SIGNATURE_HEADER, "")

    logger.info("📥 PayMongo webhook received")
    if not verify_paymongo_signature(signature_header, raw_body, secret):
        raise NotAuthenticated("Invalid webhook signature")
    return raw_body


def create_paymongo_signature(
    secret: str, payload: bytes, timestamp: Optional[int] = None, live: bool = False
) -> str:
    """
    Create a PayMongo-style signature header for testing.

    Returns:
        Header value in PayMongo's format
    """
    timestamp = timestamp if timestamp is not None else int(time.time())
    sig = compute_hmac_sha256(secret, f"{timestamp}.".encode() + payload)
    if live:
        return f"t={timestamp},te=,li={sig}"
    return f"t={timestamp},te={sig},li="
