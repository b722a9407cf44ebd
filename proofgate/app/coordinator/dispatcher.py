"""
Verification dispatcher.

IMPORTANT:
The dispatcher is a DUMB AUTHORITY. It does not interpret proof data.

Its sole responsibilities are:
- enforcing execution order
- enforcing hard stop conditions
- routing by proof kind to the structural rule table
- invoking the external cryptographic verifier when configured
- producing a single verdict

Execution order (FROZEN):
    0. Version parse           (an unparseable version is rejected on receipt)
    1. Temporal check          (stale proofs are rejected before version or structure work)
    2. Version gate            (compatibility, then in-place upgrade)
    3. Structural check        (per-kind rule table)
    4. Cryptographic verifier  (optional, external)

Every stage fails closed: the first failing check aborts the pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional, Tuple

from proofgate.app.checks.structure import (
    DEFAULT_RULES,
    StructuralRule,
    decode_payload,
    rule_for,
    validate_decoded,
)
from proofgate.app.checks.temporal import is_expired
from proofgate.app.config import VerificationConfig
from proofgate.app.coordinator.crypto import DegenerateInputGuard, VerifierLike
from proofgate.app.errors import (
    ExpiredProof,
    ProofKindMismatch,
    ProofRejected,
    UnsupportedProofKind,
    VerificationFailed,
)
from proofgate.app.schemas.envelope import ProofEnvelope, ProofKind, ProofPayload
from proofgate.app.schemas.verdict import (
    AuthorizedProof,
    GateStage,
    VerificationOutcome,
    VerificationStatus,
    Verdict,
)
from proofgate.app.versioning.gate import VersionGate

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProofVerifier:
    """
    Central verification dispatcher.

    Stateless between calls. The only mutation it performs is the version
    gate's in-place upgrade of the envelope under verification, so a single
    envelope object must not be verified concurrently.
    """

    def __init__(
        self,
        config: VerificationConfig,
        *,
        version_gate: Optional[VersionGate] = None,
        rules: Optional[Mapping[ProofKind, StructuralRule]] = None,
        crypto_verifier: Optional[VerifierLike] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config
        self._version_gate = version_gate or VersionGate(config.version_policy)
        self._rules = dict(DEFAULT_RULES if rules is None else rules)
        self._crypto_verifier = (
            DegenerateInputGuard(crypto_verifier)
            if crypto_verifier is not None
            else None
        )
        self._clock = clock or utc_now

        if config.verify_crypto and self._crypto_verifier is None:
            logger.warning(
                "Cryptographic verification is enabled but no verifier is "
                "wired; verdicts rest on structural checks alone"
            )

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: VerificationConfig,
        crypto_verifier: Optional[VerifierLike] = None,
    ) -> "ProofVerifier":
        return cls(
            config,
            version_gate=VersionGate(config.version_policy),
            crypto_verifier=crypto_verifier,
        )

    @property
    def config(self) -> VerificationConfig:
        return self._config

    @property
    def version_gate(self) -> VersionGate:
        return self._version_gate

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def verify(
        self,
        envelope: ProofEnvelope,
        *,
        now: Optional[datetime] = None,
    ) -> Verdict:
        """
        Run the full pipeline. Returns a Verdict or raises ProofRejected.
        """
        verdict, _ = self._run(envelope, now=now)
        return verdict

    def evaluate(
        self,
        envelope: ProofEnvelope,
        *,
        now: Optional[datetime] = None,
    ) -> VerificationOutcome:
        """
        Run the full pipeline and report the outcome without raising for a
        rejected proof.
        """
        trace = _PipelineTrace()

        try:
            verdict, _ = self._run(envelope, now=now, trace=trace)
        except ProofRejected as exc:
            return VerificationOutcome(
                proof_id=envelope.proof_id,
                proof_kind=envelope.proof_kind,
                status=VerificationStatus.FAIL,
                detail=str(exc),
                error_code=exc.code,
                failed_stage=GateStage(exc.stage),
                stages_executed=trace.stages,
                upgraded=trace.upgraded,
            )

        return VerificationOutcome(
            proof_id=envelope.proof_id,
            proof_kind=envelope.proof_kind,
            status=VerificationStatus.PASS,
            detail=verdict.detail,
            stages_executed=verdict.stages_executed,
            crypto_verified=verdict.crypto_verified,
            upgraded=verdict.upgraded,
        )

    def authorize(
        self,
        envelope: ProofEnvelope,
        *,
        expected_kind: Optional[ProofKind] = None,
        now: Optional[datetime] = None,
    ) -> AuthorizedProof:
        """
        Verify the envelope and build the ledger hand-off.

        When `expected_kind` is given, the envelope must authorize that
        operation (legacy aliases match their modern kind).
        """
        verdict, payload = self._run(envelope, now=now)

        canonical = envelope.proof_kind.canonical
        if expected_kind is not None and expected_kind.canonical != canonical:
            logger.warning(
                "Proof %s authorizes %s, not the requested %s",
                envelope.proof_id,
                canonical.value,
                expected_kind.canonical.value,
            )
            raise ProofKindMismatch(
                f"Expected a {expected_kind.canonical.value} proof, "
                f"got {envelope.proof_kind.value}",
                stage=GateStage.VERDICT.value,
            )

        return AuthorizedProof(
            proof_id=envelope.proof_id,
            proof_kind=canonical,
            payload=payload,
            metadata=envelope.metadata,
            verdict=verdict,
        )

    def is_valid(
        self,
        envelope: ProofEnvelope,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        try:
            return self.verify(envelope, now=now).is_valid
        except ProofRejected:
            return False

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _run(
        self,
        envelope: ProofEnvelope,
        *,
        now: Optional[datetime],
        trace: Optional["_PipelineTrace"] = None,
    ) -> Tuple[Verdict, ProofPayload]:
        trace = trace if trace is not None else _PipelineTrace()
        stages = trace.stages
        now = now or self._clock()

        stage = GateStage.RECEIVED

        try:
            # ----------------------------------------------------------
            # 0. Version must parse (HARD GATE, independent of check_version)
            # ----------------------------------------------------------
            self._version_gate.parse_version(envelope)
            stages.append(stage)

            # ----------------------------------------------------------
            # 1. Temporal check (HARD GATE)
            # ----------------------------------------------------------
            stage = GateStage.TEMPORAL_CHECKED
            if is_expired(envelope, self._config.max_age, now):
                raise ExpiredProof(
                    f"Proof has expired: created {envelope.metadata.created_at.isoformat()}, "
                    f"maximum age {self._config.max_age}"
                )
            stages.append(stage)

            # ----------------------------------------------------------
            # 2. Version gate (HARD GATE when enabled)
            # ----------------------------------------------------------
            stage = GateStage.VERSION_CHECKED
            if self._config.check_version:
                trace.upgraded = self._version_gate.admit(envelope)
            else:
                trace.upgraded = self._version_gate.upgrade(envelope)
            stages.append(stage)

            # ----------------------------------------------------------
            # 3. Structural check (routed by canonical kind)
            # ----------------------------------------------------------
            stage = GateStage.STRUCTURE_CHECKED
            rule = rule_for(envelope.proof_kind, self._rules)
            if rule is None:
                raise UnsupportedProofKind(
                    f"Unsupported proof type: {envelope.proof_kind.value}"
                )

            payload = decode_payload(envelope)
            detail = validate_decoded(envelope, payload, rule)
            stages.append(stage)

            # ----------------------------------------------------------
            # 4. Cryptographic verification (OPTIONAL)
            # ----------------------------------------------------------
            stage = GateStage.VERDICT
            crypto_verified = False
            if self._config.verify_crypto and self._crypto_verifier is not None:
                if not self._crypto_verifier.verify(payload):
                    raise VerificationFailed()
                crypto_verified = True
            stages.append(stage)

        except ProofRejected as exc:
            if exc.stage is None:
                exc.stage = stage.value
            logger.warning(
                "Rejected proof %s (kind=%s) at %s: %s",
                envelope.proof_id,
                envelope.proof_kind.value,
                exc.stage,
                exc,
            )
            raise

        logger.info(
            "Accepted proof %s (kind=%s, crypto_verified=%s): %s",
            envelope.proof_id,
            envelope.proof_kind.value,
            crypto_verified,
            detail,
        )

        verdict = Verdict(
            is_valid=True,
            detail=detail,
            stages_executed=list(stages),
            crypto_verified=crypto_verified,
            upgraded=trace.upgraded,
        )
        return verdict, payload


@dataclass
class _PipelineTrace:
    """Per-call record of how far a verification pass got."""

    stages: List[GateStage] = field(default_factory=list)
    upgraded: bool = False
