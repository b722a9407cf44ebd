"""
Tests for structural and semantic validation.

Coverage matrix:

  rule table        every authorizable kind has a row; legacy tags share it
  PayloadTooSmall   floor applies to every kind, at 31 / 32 bytes
  MissingMetadata   first missing field in table order is reported
  DecodeFailure     bad base64, non-JSON, wrong record shape
  detail            audit strings per kind
"""

import base64

import pytest

from proofgate.app.checks.structure import (
    DEFAULT_RULES,
    decode_payload,
    rule_for,
    validate_structure,
)
from proofgate.app.errors import (
    MissingMetadata,
    PayloadDecodeFailure,
    PayloadTooSmall,
    UnsupportedProofKind,
)
from proofgate.app.schemas.envelope import MIN_PROOF_DATA_SIZE, ProofKind
from proofgate.tests.fixtures.envelope_factory import (
    make_envelope,
    proof_bytes,
    without,
)


AUTHORIZABLE = [ProofKind.TRANSFER, ProofKind.WITHDRAW, ProofKind.PUBKEY_VALIDITY]


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------


def test_rule_table_covers_authorizable_kinds_only():
    assert set(DEFAULT_RULES) == set(AUTHORIZABLE)

    for kind in (ProofKind.CIPHERTEXT_VALIDITY, ProofKind.RANGE):
        assert rule_for(kind) is None


@pytest.mark.parametrize(
    "legacy, modern",
    [
        (ProofKind.TRANSFER_LEGACY, ProofKind.TRANSFER),
        (ProofKind.WITHDRAW_LEGACY, ProofKind.WITHDRAW),
    ],
)
def test_legacy_kinds_share_modern_rule(legacy, modern):
    assert legacy.is_legacy
    assert legacy.canonical is modern
    assert rule_for(legacy) is rule_for(modern)


def test_legacy_transfer_validates_like_transfer():
    envelope = make_envelope(kind=ProofKind.TRANSFER_LEGACY)

    assert validate_structure(envelope, rule_for(envelope.proof_kind)) == (
        "Verified transfer of 100 from A to B"
    )


# ---------------------------------------------------------------------------
# Payload floor
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("kind", AUTHORIZABLE)
@pytest.mark.parametrize(
    "size, ok",
    [(MIN_PROOF_DATA_SIZE - 1, False), (MIN_PROOF_DATA_SIZE, True)],
)
def test_payload_floor_applies_to_every_kind(kind, size, ok):
    envelope = make_envelope(kind=kind, payload_size=size)
    rule = rule_for(kind)

    if ok:
        validate_structure(envelope, rule)
    else:
        with pytest.raises(PayloadTooSmall):
            validate_structure(envelope, rule)


def test_size_is_checked_before_metadata():
    envelope = without(make_envelope(payload_size=10), "amount")

    with pytest.raises(PayloadTooSmall):
        validate_structure(envelope, rule_for(ProofKind.TRANSFER))


# ---------------------------------------------------------------------------
# Required metadata
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "kind, field_name",
    [
        (ProofKind.TRANSFER, "source_address"),
        (ProofKind.TRANSFER, "destination_address"),
        (ProofKind.TRANSFER, "amount"),
        (ProofKind.WITHDRAW, "source_address"),
        (ProofKind.WITHDRAW, "amount"),
    ],
)
def test_missing_required_metadata(kind, field_name):
    envelope = without(make_envelope(kind=kind), field_name)

    with pytest.raises(MissingMetadata) as exc_info:
        validate_structure(envelope, rule_for(kind))

    assert exc_info.value.field == field_name
    assert str(exc_info.value) == f"Missing required metadata: {field_name}"


def test_first_missing_field_in_table_order_is_reported():
    envelope = make_envelope(source_address=None, amount=None)

    with pytest.raises(MissingMetadata) as exc_info:
        validate_structure(envelope, rule_for(ProofKind.TRANSFER))

    assert exc_info.value.field == "source_address"


def test_withdraw_does_not_require_destination():
    envelope = make_envelope(kind=ProofKind.WITHDRAW, destination_address=None)

    assert validate_structure(envelope, rule_for(ProofKind.WITHDRAW)) == (
        "Verified withdrawal of 100 from A"
    )


def test_amount_zero_is_present():
    envelope = make_envelope(amount=0)

    assert validate_structure(envelope, rule_for(ProofKind.TRANSFER)) == (
        "Verified transfer of 0 from A to B"
    )


@pytest.mark.parametrize(
    "source, detail",
    [
        (None, "Verified pubkey validity proof"),
        ("A", "Verified pubkey validity proof for A"),
    ],
)
def test_pubkey_validity_needs_no_metadata(source, detail):
    envelope = make_envelope(
        kind=ProofKind.PUBKEY_VALIDITY,
        source_address=source,
        destination_address=None,
        amount=None,
    )

    assert validate_structure(envelope, rule_for(ProofKind.PUBKEY_VALIDITY)) == detail


# ---------------------------------------------------------------------------
# Payload decoding
# ---------------------------------------------------------------------------


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


@pytest.mark.parametrize(
    "payload",
    [
        pytest.param("%%% not base64 %%%", id="not-base64"),
        pytest.param(_b64(b"not json at all"), id="not-json"),
        pytest.param(_b64(b'{"data_type": "Transfer"}'), id="missing-binary-data"),
        pytest.param(
            _b64(b'{"data_type": "Transfer", "binary_data": [1, 2, 300]}'),
            id="byte-out-of-range",
        ),
        pytest.param(
            _b64(b'{"data_type": "Transfer", "binary_data": "abc"}'),
            id="binary-data-not-list",
        ),
    ],
)
def test_undecodable_payload_is_decode_failure(payload):
    envelope = make_envelope(payload=payload)

    with pytest.raises(PayloadDecodeFailure):
        decode_payload(envelope)


def test_decode_payload_returns_raw_bytes():
    payload = decode_payload(make_envelope(payload_size=48))

    assert payload.binary_data == proof_bytes(48)
    assert payload.kind_label == "Transfer"
    assert payload.size == 48


# ---------------------------------------------------------------------------
# Default rule lookup
# ---------------------------------------------------------------------------


def test_validate_structure_defaults_to_rule_for_kind():
    envelope = make_envelope(kind=ProofKind.WITHDRAW)

    assert validate_structure(envelope) == "Verified withdrawal of 100 from A"


def test_validate_structure_without_rule_row_is_unsupported():
    with pytest.raises(UnsupportedProofKind):
        validate_structure(make_envelope(kind=ProofKind.CIPHERTEXT_VALIDITY))
