"""
Error taxonomy for proof loading and verification.

Two families exist:

- Envelope errors (IO, parse, serialization) mean the artifact could not be
  loaded or written at all.
- ProofRejected subclasses are typed rejections of a single proof. They are
  never fatal to the process; the caller MUST treat any of them as
  "do not authorize the ledger action".
"""

from __future__ import annotations

from typing import Optional


class ProofGateError(Exception):
    """Base class for every error raised by proofgate."""


# ---------------------------------------------------------------------------
# Envelope loading / persistence
# ---------------------------------------------------------------------------


class EnvelopeIOError(ProofGateError):
    """The envelope source or destination could not be read or written."""


class EnvelopeParseError(ProofGateError):
    """
    The content is not a well-formed envelope.

    `detail` carries the underlying syntax or validation message.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message if detail is None else f"{message}: {detail}")
        self.detail = detail


class EnvelopeSerializationError(ProofGateError):
    """The envelope holds data that cannot be represented on the wire."""


# ---------------------------------------------------------------------------
# Proof rejections (fail-closed verdicts)
# ---------------------------------------------------------------------------


class ProofRejected(ProofGateError):
    """
    A proof failed one of the gating stages.

    `code` is a stable machine-readable identifier.
    `stage` is the pipeline stage that rejected the proof; the dispatcher
    fills it in when it is not known at raise time.
    """

    code = "rejected"
    default_message = "Proof rejected"

    def __init__(self, message: Optional[str] = None, *, stage: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.stage = stage


class ExpiredProof(ProofRejected):
    code = "expired_proof"
    default_message = "Proof has expired"


class IncompatibleVersion(ProofRejected):
    code = "incompatible_version"
    default_message = "Incompatible proof version"


class UnsupportedProofKind(ProofRejected):
    code = "unsupported_proof_kind"
    default_message = "Unsupported proof type"


class ProofKindMismatch(ProofRejected):
    code = "proof_kind_mismatch"
    default_message = "Proof type does not match the requested operation"


class PayloadDecodeFailure(ProofRejected):
    code = "payload_decode_failure"
    default_message = "Failed to extract proof data"


class PayloadTooSmall(ProofRejected):
    code = "payload_too_small"
    default_message = "Proof data too small"


class MissingMetadata(ProofRejected):
    code = "missing_metadata"

    def __init__(self, field: str, *, stage: Optional[str] = None):
        super().__init__(f"Missing required metadata: {field}", stage=stage)
        self.field = field


class VerificationFailed(ProofRejected):
    code = "verification_failed"
    default_message = "Cryptographic verification failed"
