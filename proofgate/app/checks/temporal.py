"""
Temporal validation (freshness) of proof envelopes.

Independent of proof kind. The only external input is the wall-clock time,
which callers pass explicitly so that checks are reproducible.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from proofgate.app.schemas.envelope import ProofEnvelope

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=1)


def proof_age(envelope: ProofEnvelope, now: datetime) -> timedelta:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("now must be timezone-aware")
    return now - envelope.metadata.created_at


def is_expired(
    envelope: ProofEnvelope,
    max_age: timedelta,
    now: datetime,
) -> bool:
    """
    True iff the envelope is older than `max_age` at `now`.

    `created_at` is guaranteed to be a timezone-aware datetime by the
    envelope schema. Envelopes with unparseable timestamps are rejected when
    they are loaded and never reach this check.
    """
    age = proof_age(envelope, now)

    if age < timedelta(0):
        logger.warning(
            "Proof %s has a creation time %s in the future",
            envelope.proof_id,
            -age,
        )

    return age > max_age
