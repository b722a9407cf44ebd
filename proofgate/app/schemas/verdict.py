"""
Verification results.

- Verdict: what the dispatcher returns for an accepted proof.
- VerificationOutcome: non-raising report form of a verification pass,
  suitable for logs and the HTTP surface.
- AuthorizedProof: the only object handed to ledger-transaction
  construction. It exists only for proofs that passed every stage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from proofgate.app.schemas.envelope import ProofKind, ProofMetadata, ProofPayload


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class GateStage(str, Enum):
    """
    Pipeline states, in execution order.

    Transitions are strictly sequential and short-circuit on first failure.
    """

    RECEIVED = "received"
    TEMPORAL_CHECKED = "temporal_checked"
    VERSION_CHECKED = "version_checked"
    STRUCTURE_CHECKED = "structure_checked"
    VERDICT = "verdict"


class VerificationStatus(str, Enum):
    """Used strictly for authorization gating."""

    PASS = "pass"
    FAIL = "fail"


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------


class Verdict(BaseModel):
    is_valid: bool
    detail: Optional[str] = None
    stages_executed: List[GateStage] = Field(default_factory=list)
    crypto_verified: bool = Field(
        False,
        description=(
            "Whether an external cryptographic verifier accepted the proof. "
            "False means validity rests on structural checks alone."
        ),
    )
    upgraded: bool = Field(
        False,
        description="Whether the envelope was upgraded to the current schema",
    )

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Report form
# ---------------------------------------------------------------------------


class VerificationOutcome(BaseModel):
    """
    Result of a verification pass, whether the proof was accepted or not.

    The error code is available for diagnostics only. Authorization depends
    on `status` alone.
    """

    proof_id: UUID
    proof_kind: ProofKind
    status: VerificationStatus
    detail: Optional[str] = None

    error_code: Optional[str] = Field(
        None,
        description="Stable rejection identifier (e.g. 'expired_proof')",
    )

    failed_stage: Optional[GateStage] = Field(
        None,
        description="Stage whose check rejected the proof",
    )

    stages_executed: List[GateStage] = Field(default_factory=list)
    crypto_verified: bool = False
    upgraded: bool = False

    evaluated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @model_validator(mode="after")
    def enforce_status_invariants(self):
        if self.status == VerificationStatus.PASS:
            if self.error_code is not None or self.failed_stage is not None:
                raise ValueError(
                    "A passing outcome must not carry an error code or failed stage"
                )
        else:
            if self.error_code is None or self.failed_stage is None:
                raise ValueError(
                    "A failing outcome must carry an error code and failed stage"
                )
            if self.crypto_verified:
                raise ValueError("A failing outcome cannot be crypto-verified")
        return self

    @property
    def authorized(self) -> bool:
        return self.status == VerificationStatus.PASS

    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Ledger hand-off
# ---------------------------------------------------------------------------


class AuthorizedProof(BaseModel):
    """
    Hand-off to the ledger transaction builder.

    `proof_kind` is canonical: legacy aliases are already resolved.
    """

    proof_id: UUID
    proof_kind: ProofKind
    payload: ProofPayload
    metadata: ProofMetadata
    verdict: Verdict

    @model_validator(mode="after")
    def only_valid_proofs(self):
        if not self.verdict.is_valid:
            raise ValueError("Only valid proofs can be handed to the ledger")
        if self.proof_kind.is_legacy:
            raise ValueError("AuthorizedProof requires a canonical proof kind")
        return self

    model_config = ConfigDict(frozen=True)
