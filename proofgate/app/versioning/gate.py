"""
Version gate for proof envelopes.

Compatibility and upgrade are deliberately separate predicates:

- an envelope is COMPATIBLE when MIN_SUPPORTED <= version <= CURRENT,
- an envelope NEEDS UPGRADE when version < CURRENT, regardless of range.

A proof can therefore be upgradeable without being compatible. `admit`
enforces the floor before any upgrade is attempted.

Upgrades are an explicit chain of pure functions keyed by source version.
Each step receives the wire document at its source version and returns the
document at the next version. The registry is empty while a single schema
version exists; the upgrade then only rewrites the version field. Once any
step is registered, the chain must reach CURRENT without gaps.
"""

from __future__ import annotations

import copy
import logging
from typing import Callable, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from proofgate.app.errors import IncompatibleVersion
from proofgate.app.schemas.envelope import ProofEnvelope
from proofgate.app.versioning.semver import InvalidVersion, SchemaVersion

logger = logging.getLogger(__name__)


# Defaults only. The active range is process configuration, see VersionPolicy.
CURRENT_VERSION = "1.0.0"
MIN_SUPPORTED_VERSION = "1.0.0"


# Wire document at version N -> wire document at version N+1
UpgradeStep = Callable[[dict], dict]

UPGRADE_STEPS: Dict[str, UpgradeStep] = {}


# ---------------------------------------------------------------------------
# Supported range
# ---------------------------------------------------------------------------


class VersionPolicy(BaseModel):
    """Supported envelope schema range, fixed at startup."""

    current: str = CURRENT_VERSION
    min_supported: str = MIN_SUPPORTED_VERSION

    @field_validator("current", "min_supported")
    @classmethod
    def must_parse(cls, v: str) -> str:
        try:
            SchemaVersion.parse(v)
        except InvalidVersion as exc:
            raise ValueError(str(exc)) from exc
        return v

    @model_validator(mode="after")
    def floor_not_above_current(self):
        if SchemaVersion.parse(self.min_supported) > SchemaVersion.parse(self.current):
            raise ValueError(
                f"min_supported ({self.min_supported}) must not exceed "
                f"current ({self.current})"
            )
        return self

    @property
    def current_version(self) -> SchemaVersion:
        return SchemaVersion.parse(self.current)

    @property
    def min_supported_version(self) -> SchemaVersion:
        return SchemaVersion.parse(self.min_supported)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


class VersionGate:
    def __init__(
        self,
        policy: Optional[VersionPolicy] = None,
        steps: Optional[Mapping[str, UpgradeStep]] = None,
    ) -> None:
        self._policy = policy or VersionPolicy()
        self._steps: Dict[str, UpgradeStep] = dict(
            UPGRADE_STEPS if steps is None else steps
        )

    @property
    def policy(self) -> VersionPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_compatible(self, envelope: ProofEnvelope) -> bool:
        try:
            version = SchemaVersion.parse(envelope.schema_version)
        except InvalidVersion:
            return False

        return (
            self._policy.min_supported_version
            <= version
            <= self._policy.current_version
        )

    def needs_upgrade(self, envelope: ProofEnvelope) -> bool:
        return self.parse_version(envelope) < self._policy.current_version

    def compare_to_current(self, envelope: ProofEnvelope) -> int:
        """-1, 0 or 1 as the envelope is older, equal or newer than CURRENT."""
        version = self.parse_version(envelope)
        current = self._policy.current_version
        return (version > current) - (version < current)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def upgrade(self, envelope: ProofEnvelope) -> bool:
        """
        Upgrade `envelope` in place to the current schema version.

        Returns False when no upgrade was needed.
        """
        if not self.needs_upgrade(envelope):
            return False

        original_version = envelope.schema_version
        current = self._policy.current_version
        document = envelope.to_wire()

        applied = []
        while SchemaVersion.parse(document["version"]) < current:
            source = document["version"]
            step = self._steps.get(source)
            if step is None:
                if not self._steps:
                    break
                raise RuntimeError(
                    f"No upgrade step registered for version {source}"
                )
            if source in applied:
                raise RuntimeError(f"Upgrade chain revisits version {source}")

            document = step(copy.deepcopy(document))
            applied.append(source)

            reached = SchemaVersion.parse(document["version"])
            if reached <= SchemaVersion.parse(source):
                raise RuntimeError(
                    f"Upgrade step for {source} did not advance the version"
                )
            if reached > current:
                raise RuntimeError(
                    f"Upgrade step for {source} overshoots {self._policy.current}"
                )

        document["version"] = self._policy.current
        upgraded = ProofEnvelope.model_validate(document)

        if upgraded.proof_id != envelope.proof_id:
            raise RuntimeError("Upgrade steps must not change proof_id")

        envelope.metadata = upgraded.metadata
        envelope.payload = upgraded.payload
        envelope.schema_version = upgraded.schema_version

        logger.info(
            "Upgraded envelope proof_id=%s from %s to %s (steps: %s)",
            envelope.proof_id,
            original_version,
            envelope.schema_version,
            ", ".join(applied) or "none",
        )
        return True

    def admit(self, envelope: ProofEnvelope) -> bool:
        """
        Enforce the supported range, then upgrade.

        Returns whether an upgrade happened.
        """
        if not self.is_compatible(envelope):
            raise IncompatibleVersion(
                f"Proof version {envelope.schema_version} is outside the "
                f"supported range {self._policy.min_supported}..{self._policy.current}"
            )
        return self.upgrade(envelope)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def parse_version(envelope: ProofEnvelope) -> SchemaVersion:
        """Parse the envelope version; unparseable is IncompatibleVersion."""
        try:
            return SchemaVersion.parse(envelope.schema_version)
        except InvalidVersion as exc:
            raise IncompatibleVersion(
                f"Failed to parse proof version: {envelope.schema_version!r}"
            ) from exc
