"""
Import-and-verify intake.

Loads an envelope from a file and runs it through the dispatcher, producing
the ledger hand-off. File reading is the only blocking step; the async
variant moves it to a worker thread.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import anyio.to_thread

from proofgate.app.codec.envelope_codec import PathLike, import_envelope
from proofgate.app.coordinator.dispatcher import ProofVerifier
from proofgate.app.schemas.envelope import ProofKind
from proofgate.app.schemas.verdict import AuthorizedProof


def import_and_verify(
    source: PathLike,
    verifier: ProofVerifier,
    *,
    expected_kind: Optional[ProofKind] = None,
    now: Optional[datetime] = None,
) -> AuthorizedProof:
    envelope = import_envelope(source)
    return verifier.authorize(envelope, expected_kind=expected_kind, now=now)


async def import_and_verify_async(
    source: PathLike,
    verifier: ProofVerifier,
    *,
    expected_kind: Optional[ProofKind] = None,
    now: Optional[datetime] = None,
) -> AuthorizedProof:
    envelope = await anyio.to_thread.run_sync(import_envelope, source)
    return verifier.authorize(envelope, expected_kind=expected_kind, now=now)
