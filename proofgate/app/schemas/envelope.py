"""
Proof envelope schema.

Defines the interchange unit exchanged between a proof producer and a proof
consumer: a versioned, self-describing container for an opaque proof payload
and the metadata describing the ledger operation it claims to authorize.

Wire names differ from attribute names for a few fields (`version`,
`proof_type`, `data`, `timestamp`). Models accept both and always serialize
by alias.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, List, Optional
from uuid import UUID

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


# Structural floor for decoded proof data. Real proofs are larger.
MIN_PROOF_DATA_SIZE = 32

U64_MAX = 2**64 - 1

Amount = Annotated[int, Field(strict=True, ge=0, le=U64_MAX)]


# ---------------------------------------------------------------------------
# Proof kinds (CLOSED SET)
# ---------------------------------------------------------------------------


class ProofKind(str, Enum):
    """
    Operation types a proof can authorize.

    Legacy tags are kept for backward compatibility. They are equivalent to
    their modern counterpart everywhere except on the wire; use `canonical`
    before comparing or dispatching.
    """

    TRANSFER = "Transfer"
    WITHDRAW = "Withdraw"
    PUBKEY_VALIDITY = "PubkeyValidity"

    # Legacy aliases
    TRANSFER_LEGACY = "TransferWithProof"
    WITHDRAW_LEGACY = "WithdrawWithProof"

    # Known to producers, not authorized by this consumer
    CIPHERTEXT_VALIDITY = "CiphertextValidity"
    RANGE = "Range"

    @property
    def canonical(self) -> "ProofKind":
        return _LEGACY_ALIASES.get(self, self)

    @property
    def is_legacy(self) -> bool:
        return self in _LEGACY_ALIASES


_LEGACY_ALIASES = {
    ProofKind.TRANSFER_LEGACY: ProofKind.TRANSFER,
    ProofKind.WITHDRAW_LEGACY: ProofKind.WITHDRAW,
}


# ---------------------------------------------------------------------------
# Inner payload record
# ---------------------------------------------------------------------------


class ProofPayload(BaseModel):
    """
    Decoded form of the envelope payload.

    On the wire this is JSON `{"data_type": str, "binary_data": [u8, ...]}`,
    base64-encoded into the envelope `data` field. This model does not
    enforce the size floor; that is a verification concern.
    """

    kind_label: str = Field(..., alias="data_type")
    binary_data: bytes

    @field_validator("binary_data", mode="before")
    @classmethod
    def coerce_byte_list(cls, v: Any) -> bytes:
        if isinstance(v, (bytes, bytearray)):
            return bytes(v)
        if not isinstance(v, list):
            raise ValueError("binary_data must be a list of byte values")
        if not all(isinstance(b, int) and not isinstance(b, bool) for b in v):
            raise ValueError("binary_data must contain integers only")
        try:
            return bytes(v)
        except ValueError as exc:
            raise ValueError("binary_data values must be in range 0..255") from exc

    @field_serializer("binary_data")
    def serialize_byte_list(self, v: bytes) -> List[int]:
        return list(v)

    def to_json_bytes(self) -> bytes:
        return json.dumps(
            self.model_dump(by_alias=True),
            separators=(",", ":"),
        ).encode("utf-8")

    @property
    def size(self) -> int:
        return len(self.binary_data)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


class ProofMetadata(BaseModel):
    """
    Operation metadata carried alongside the proof.

    Which fields are required depends on the proof kind; see
    proofgate.app.checks.structure.DEFAULT_RULES.
    """

    source_address: Optional[str] = None
    destination_address: Optional[str] = None
    mint_address: Optional[str] = None
    amount: Optional[Amount] = None

    # Unparseable or naive timestamps are rejected here, at load time.
    created_at: AwareDatetime = Field(..., alias="timestamp")

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Envelope (PUBLIC INTERCHANGE CONTRACT)
# ---------------------------------------------------------------------------


class ProofEnvelope(BaseModel):
    """
    The proof interchange unit.

    Mutable only through the version gate's upgrade step, which may rewrite
    `schema_version`, `metadata` and `payload` in place. `proof_id` is frozen.
    """

    schema_version: str = Field(
        ...,
        alias="version",
        description="Envelope schema version (major.minor.patch), parsed by the version gate",
    )

    proof_id: UUID = Field(
        ...,
        frozen=True,
        description="Globally unique identifier assigned at export",
    )

    proof_kind: ProofKind = Field(
        ...,
        alias="proof_type",
        description="Operation type the proof authorizes",
    )

    producer_version: str = Field(
        ...,
        description="Producing library build; informational only",
    )

    payload: str = Field(
        ...,
        alias="data",
        description="Base64 of the JSON-encoded ProofPayload",
    )

    metadata: ProofMetadata

    def to_wire(self) -> dict:
        """Wire document (JSON-compatible dict keyed by wire names)."""
        return self.model_dump(mode="json", by_alias=True)

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        validate_assignment=True,
    )
