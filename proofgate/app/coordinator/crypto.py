"""
Cryptographic verifier seam.

The mathematics of proof verification is an external capability. The
dispatcher only needs a boolean answer for a decoded payload.

Any verifier wired into the dispatcher is wrapped in DegenerateInputGuard,
which rejects empty or all-zero payloads before delegating. A degenerate
payload is never accepted by default.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol, Union, runtime_checkable

from proofgate.app.schemas.envelope import ProofPayload

logger = logging.getLogger(__name__)


@runtime_checkable
class CryptoVerifier(Protocol):
    """
    Interface for external cryptographic proof verification.

    Implementations must:
    - return True only for a proof they have verified
    - be free of side effects on the payload
    """

    def verify(self, payload: ProofPayload) -> bool:
        ...


VerifierLike = Union[CryptoVerifier, Callable[[ProofPayload], bool]]


def is_degenerate(data: bytes) -> bool:
    return not data or data.count(0) == len(data)


class DegenerateInputGuard:
    """Rejects degenerate payloads, then delegates to the wrapped verifier."""

    def __init__(self, inner: VerifierLike) -> None:
        if isinstance(inner, CryptoVerifier):
            self._verify = inner.verify
        elif callable(inner):
            self._verify = inner
        else:
            raise TypeError(
                "crypto verifier must implement verify(payload) or be callable"
            )

    def verify(self, payload: ProofPayload) -> bool:
        if is_degenerate(payload.binary_data):
            logger.warning(
                "Rejecting degenerate proof data (%d bytes, all zero)",
                payload.size,
            )
            return False

        return self._verify(payload) is True
