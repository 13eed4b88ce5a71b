"""Tests for webhook signature verification."""

import json

from atsbridge.engine.signatures import (
    ASHBY_SCHEME,
    GREENHOUSE_SCHEME,
    LEVER_SCHEME,
    compute_signature,
    verify,
)

SECRET = "whsec_test_secret"
BODY = json.dumps({"action": "candidate_stage_change", "payload": {"application": {"id": 1}}}).encode()


def _flip_byte(body: bytes) -> bytes:
    return body[:10] + bytes([body[10] ^ 0x01]) + body[11:]


def test_greenhouse_signature_roundtrip():
    sig = compute_signature(GREENHOUSE_SCHEME, BODY, SECRET)
    assert verify(GREENHOUSE_SCHEME, BODY, f"sha256 {sig}", SECRET)
    assert verify(GREENHOUSE_SCHEME, BODY, f"sha256={sig}", SECRET)


def test_greenhouse_requires_prefix():
    sig = compute_signature(GREENHOUSE_SCHEME, BODY, SECRET)
    assert not verify(GREENHOUSE_SCHEME, BODY, sig, SECRET)
    # Ashby also sends the bare digest
    assert verify(ASHBY_SCHEME, BODY, compute_signature(ASHBY_SCHEME, BODY, SECRET), SECRET)


def test_flipped_body_byte_fails():
    sig = compute_signature(GREENHOUSE_SCHEME, BODY, SECRET)
    assert not verify(GREENHOUSE_SCHEME, _flip_byte(BODY), f"sha256 {sig}", SECRET)

    ashby_sig = compute_signature(ASHBY_SCHEME, BODY, SECRET)
    assert verify(ASHBY_SCHEME, BODY, f"sha256={ashby_sig}", SECRET)
    assert not verify(ASHBY_SCHEME, _flip_byte(BODY), f"sha256={ashby_sig}", SECRET)


def test_wrong_secret_fails():
    sig = compute_signature(ASHBY_SCHEME, BODY, "other_secret")
    assert not verify(ASHBY_SCHEME, BODY, sig, SECRET)


def test_no_secret_configured_accepts():
    assert verify(GREENHOUSE_SCHEME, BODY, None, None)
    assert verify(ASHBY_SCHEME, BODY, "garbage", "")


def test_missing_signature_with_secret_fails():
    assert not verify(GREENHOUSE_SCHEME, BODY, None, SECRET)
    assert not verify(GREENHOUSE_SCHEME, BODY, "", SECRET)


def test_non_hex_signature_fails():
    assert not verify(ASHBY_SCHEME, BODY, "sha256=zzzz", SECRET)
    assert not verify(ASHBY_SCHEME, BODY, "sha256=é" * 8, SECRET)


def test_header_lookup_order():
    headers = {"x-ashby-signature": "first", "signature": "second"}
    assert ASHBY_SCHEME.header_value(headers) == "first"
    assert ASHBY_SCHEME.header_value({"signature": "second"}) == "second"
    assert GREENHOUSE_SCHEME.header_value({}) is None


def _lever_body(token: str, triggered_at: int, signature: str) -> bytes:
    return json.dumps(
        {
            "event": "candidateStageChange",
            "token": token,
            "triggeredAt": triggered_at,
            "signature": signature,
            "data": {"opportunityId": "opp-1", "toStageId": "stage-2"},
        }
    ).encode()


def test_lever_signs_token_and_timestamp():
    sig = compute_signature(LEVER_SCHEME, b"tok-abc1700000000000", SECRET)
    assert verify(LEVER_SCHEME, _lever_body("tok-abc", 1700000000000, sig), None, SECRET)


def test_lever_token_only_signature_accepted():
    sig = compute_signature(LEVER_SCHEME, b"tok-abc", SECRET)
    assert verify(LEVER_SCHEME, _lever_body("tok-abc", 1700000000000, sig), None, SECRET)


def test_lever_tampered_token_fails():
    sig = compute_signature(LEVER_SCHEME, b"tok-abc1700000000000", SECRET)
    assert not verify(LEVER_SCHEME, _lever_body("tok-xyz", 1700000000000, sig), None, SECRET)


def test_lever_missing_signature_fails():
    body = json.dumps({"event": "candidateStageChange", "token": "tok"}).encode()
    assert not verify(LEVER_SCHEME, body, None, SECRET)
    assert not verify(LEVER_SCHEME, b"not json", None, SECRET)
