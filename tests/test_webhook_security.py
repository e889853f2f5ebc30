"""Tests for PayMongo webhook signature checks."""

import time

from fixhub.webhook_security import (
    MAX_WEBHOOK_AGE_SECONDS,
    create_paymongo_signature,
    parse_signature_header,
    verify_paymongo_signature,
    verify_timestamp,
)

SECRET = "whsk_unit"
BODY = b'{"data":{"attributes":{"type":"checkout_session.payment.paid"}}}'


class TestTimestamp:
    def test_recent_timestamp_accepted(self) -> None:
        assert verify_timestamp(str(int(time.time())))

    def test_old_timestamp_rejected(self) -> None:
        now = 1_700_000_000
        assert not verify_timestamp(str(now - MAX_WEBHOOK_AGE_SECONDS - 1), now=now)

    def test_missing_or_garbage_rejected(self) -> None:
        assert not verify_timestamp(None)
        assert not verify_timestamp("yesterday")


class TestSignature:
    def test_parse_header(self) -> None:
        assert parse_signature_header("t=1,te=abc,li=") == {"t": "1", "te": "abc", "li": ""}

    def test_valid_test_mode_signature(self) -> None:
        header = create_paymongo_signature(SECRET, BODY)
        assert verify_paymongo_signature(header, BODY, SECRET)

    def test_valid_live_mode_signature(self) -> None:
        header = create_paymongo_signature(SECRET, BODY, live=True)
        assert verify_paymongo_signature(header, BODY, SECRET)

    def test_tampered_body_rejected(self) -> None:
        header = create_paymongo_signature(SECRET, BODY)
        assert not verify_paymongo_signature(header, BODY + b" ", SECRET)

    def test_wrong_secret_rejected(self) -> None:
        header = create_paymongo_signature("other", BODY)
        assert not verify_paymongo_signature(header, BODY, SECRET)

    def test_stale_signature_rejected(self) -> None:
        header = create_paymongo_signature(SECRET, BODY, timestamp=1_000)
        assert not verify_paymongo_signature(header, BODY, SECRET, now=1_000 + 3600)

    def test_missing_pieces_rejected(self) -> None:
        assert not verify_paymongo_signature("", BODY, SECRET)
        assert not verify_paymongo_signature("t=123", BODY, SECRET)
        assert not verify_paymongo_signature(create_paymongo_signature(SECRET, BODY), BODY, None)
