"""
Structural and semantic validation of proof envelopes.

Per-kind requirements live in a single rule table rather than in branching
code, so supporting a new proof kind is a one-row change.

Check order (FROZEN):
    1. payload decodes (base64 -> JSON -> ProofPayload)
    2. decoded binary data meets the size floor
    3. required metadata fields are present, in table order

These checks establish shape only. They say nothing about cryptographic
soundness.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from proofgate.app.errors import (
    MissingMetadata,
    PayloadDecodeFailure,
    PayloadTooSmall,
    UnsupportedProofKind,
)
from proofgate.app.schemas.envelope import (
    MIN_PROOF_DATA_SIZE,
    ProofEnvelope,
    ProofKind,
    ProofMetadata,
    ProofPayload,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------


def _describe_transfer(metadata: ProofMetadata) -> str:
    return (
        f"Verified transfer of {metadata.amount} "
        f"from {metadata.source_address} to {metadata.destination_address}"
    )


def _describe_withdraw(metadata: ProofMetadata) -> str:
    return (
        f"Verified withdrawal of {metadata.amount} "
        f"from {metadata.source_address}"
    )


def _describe_pubkey_validity(metadata: ProofMetadata) -> str:
    if metadata.source_address:
        return f"Verified pubkey validity proof for {metadata.source_address}"
    return "Verified pubkey validity proof"


@dataclass(frozen=True)
class StructuralRule:
    kind: ProofKind
    required_metadata: Tuple[str, ...]
    describe: Callable[[ProofMetadata], str]
    min_payload_size: int = MIN_PROOF_DATA_SIZE


DEFAULT_RULES: Dict[ProofKind, StructuralRule] = {
    ProofKind.TRANSFER: StructuralRule(
        kind=ProofKind.TRANSFER,
        required_metadata=("source_address", "destination_address", "amount"),
        describe=_describe_transfer,
    ),
    ProofKind.WITHDRAW: StructuralRule(
        kind=ProofKind.WITHDRAW,
        required_metadata=("source_address", "amount"),
        describe=_describe_withdraw,
    ),
    ProofKind.PUBKEY_VALIDITY: StructuralRule(
        kind=ProofKind.PUBKEY_VALIDITY,
        required_metadata=(),
        describe=_describe_pubkey_validity,
    ),
}


def rule_for(
    kind: ProofKind,
    rules: Mapping[ProofKind, StructuralRule] = DEFAULT_RULES,
) -> Optional[StructuralRule]:
    """Look up the rule for a kind; legacy aliases share their modern row."""
    return rules.get(kind.canonical)


# ---------------------------------------------------------------------------
# Payload decoding
# ---------------------------------------------------------------------------


def decode_payload(envelope: ProofEnvelope) -> ProofPayload:
    try:
        raw = base64.b64decode(envelope.payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadDecodeFailure(
            f"Failed to extract proof data: payload is not valid base64 ({exc})"
        ) from exc

    try:
        return ProofPayload.model_validate_json(raw)
    except ValidationError as exc:
        raise PayloadDecodeFailure(
            "Failed to extract proof data: payload is not a valid proof record "
            f"({exc.error_count()} error(s))"
        ) from exc


# ---------------------------------------------------------------------------
# Public check
# ---------------------------------------------------------------------------


def validate_structure(
    envelope: ProofEnvelope,
    rule: Optional[StructuralRule] = None,
) -> str:
    """
    Run the structural checks for `rule` against `envelope`.

    `rule` defaults to the DEFAULT_RULES row for the envelope's kind.
    Returns a human-readable detail string for audit logging.
    """
    if rule is None:
        rule = rule_for(envelope.proof_kind)
        if rule is None:
            raise UnsupportedProofKind(
                f"Unsupported proof type: {envelope.proof_kind.value}"
            )

    payload = decode_payload(envelope)
    return validate_decoded(envelope, payload, rule)


def validate_decoded(
    envelope: ProofEnvelope,
    payload: ProofPayload,
    rule: StructuralRule,
) -> str:
    if payload.size < rule.min_payload_size:
        raise PayloadTooSmall(
            f"Proof data too small: {payload.size} bytes, "
            f"minimum is {rule.min_payload_size}"
        )

    metadata = envelope.metadata
    for field_name in rule.required_metadata:
        if getattr(metadata, field_name) is None:
            raise MissingMetadata(field_name)

    if envelope.proof_kind.is_legacy:
        logger.debug(
            "Proof %s uses legacy kind tag %s, validated as %s",
            envelope.proof_id,
            envelope.proof_kind.value,
            rule.kind.value,
        )

    return rule.describe(metadata)
