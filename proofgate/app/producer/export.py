"""
Producer-side export path.

Builds proof envelopes from a proof kind, raw proof bytes and operation
metadata. Pure constructors: nothing here performs I/O. Persisting an
envelope is the codec's job.

`build_payload` is the only sanctioned way to wrap raw proof bytes. It
refuses payloads below the structural floor and degenerate (all-zero)
payloads, so placeholder proof data cannot be exported.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union
from uuid import uuid4

from proofgate.app.coordinator.crypto import is_degenerate
from proofgate.app.schemas.envelope import (
    MIN_PROOF_DATA_SIZE,
    ProofEnvelope,
    ProofKind,
    ProofMetadata,
    ProofPayload,
)
from proofgate.app.versioning.gate import CURRENT_VERSION
from proofgate.app.versioning.semver import SchemaVersion

logger = logging.getLogger(__name__)

DEFAULT_PRODUCER_VERSION = "proofgate-0.1.0"

EXPORTABLE_METADATA_FIELDS = frozenset(
    {"source_address", "destination_address", "mint_address", "amount"}
)


def build_payload(kind: ProofKind, raw_payload: Union[bytes, bytearray]) -> ProofPayload:
    if not isinstance(raw_payload, (bytes, bytearray)):
        raise TypeError("raw_payload must be bytes")

    data = bytes(raw_payload)

    if len(data) < MIN_PROOF_DATA_SIZE:
        raise ValueError(
            f"Proof data too small: {len(data)} bytes, "
            f"minimum is {MIN_PROOF_DATA_SIZE}"
        )

    if is_degenerate(data):
        raise ValueError("Refusing to export degenerate (all-zero) proof data")

    return ProofPayload(kind_label=kind.value, binary_data=data)


def encode_payload(payload: ProofPayload) -> str:
    return base64.b64encode(payload.to_json_bytes()).decode("ascii")


def export_proof(
    kind: ProofKind,
    raw_payload: Union[bytes, bytearray],
    metadata: Optional[Mapping[str, Any]] = None,
    *,
    producer_version: str = DEFAULT_PRODUCER_VERSION,
    schema_version: str = CURRENT_VERSION,
    clock: Optional[Callable[[], datetime]] = None,
) -> ProofEnvelope:
    """
    Build a new envelope.

    Assigns a fresh proof_id, stamps created_at with the current time and
    sets the schema version. `metadata` may carry source_address,
    destination_address, mint_address and amount; the timestamp is always
    assigned here. An unparseable `schema_version` raises InvalidVersion.
    """
    SchemaVersion.parse(schema_version)

    fields = dict(metadata or {})

    unknown = set(fields) - EXPORTABLE_METADATA_FIELDS
    if unknown:
        raise ValueError(
            f"Unsupported metadata field(s): {', '.join(sorted(unknown))}"
        )

    payload = build_payload(kind, raw_payload)
    created_at = (clock or (lambda: datetime.now(timezone.utc)))()

    envelope = ProofEnvelope(
        schema_version=schema_version,
        proof_id=uuid4(),
        proof_kind=kind,
        producer_version=producer_version,
        payload=encode_payload(payload),
        metadata=ProofMetadata(created_at=created_at, **fields),
    )

    logger.info(
        "Built %s envelope proof_id=%s (%d bytes of proof data)",
        kind.value,
        envelope.proof_id,
        payload.size,
    )
    return envelope
