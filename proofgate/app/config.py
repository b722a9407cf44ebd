"""
Verification configuration.

Defines which gating stages run and the parameters they use. Configuration
is parsed once at startup, is read-only at runtime, and is the only input to
verification besides the envelope itself and the wall clock.
"""

from __future__ import annotations

import os
from datetime import timedelta

from pydantic import (
    BaseModel,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)

from proofgate.app.checks.temporal import DEFAULT_MAX_AGE
from proofgate.app.versioning.gate import (
    CURRENT_VERSION,
    MIN_SUPPORTED_VERSION,
    VersionPolicy,
)

class VerificationConfig(BaseModel):
    """
    Runtime configuration for the verification dispatcher.

    Read-only at runtime. Must not introduce non-deterministic behavior into
    verdicts.
    """

    # ------------------------------------------------------------------
    # Stage gates
    # ------------------------------------------------------------------

    max_age: timedelta = Field(
        DEFAULT_MAX_AGE,
        description="Maximum proof age before it is considered expired",
    )

    check_version: bool = Field(
        True,
        description=(
            "Enforce the supported schema version range. Disable only for "
            "environments that trust the producer."
        ),
    )

    verify_crypto: bool = Field(
        True,
        description=(
            "Invoke the external cryptographic verifier when one is wired. "
            "Without one, validity rests on structural checks alone."
        ),
    )

    # ------------------------------------------------------------------
    # Supported schema range
    # ------------------------------------------------------------------

    current_schema_version: str = Field(
        CURRENT_VERSION,
        description="Schema version produced and preferred by this build",
    )

    min_supported_schema_version: str = Field(
        MIN_SUPPORTED_VERSION,
        description="Oldest schema version still accepted",
    )

    # Built from the two fields above; owns the range validation
    _version_policy: VersionPolicy = PrivateAttr()

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("max_age")
    @classmethod
    def max_age_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("max_age must be a positive duration")
        return v

    @model_validator(mode="after")
    def build_version_policy(self):
        try:
            self._version_policy = VersionPolicy(
                current=self.current_schema_version,
                min_supported=self.min_supported_schema_version,
            )
        except ValidationError as exc:
            raise ValueError(f"Invalid supported schema range: {exc}") from exc
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def version_policy(self) -> VersionPolicy:
        return self._version_policy

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "VerificationConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.strip().lower() in {"1", "true", "yes", "on"}

        return cls(
            max_age=timedelta(
                seconds=int(
                    os.getenv(
                        "PROOFGATE_MAX_PROOF_AGE_SECONDS",
                        str(int(DEFAULT_MAX_AGE.total_seconds())),
                    )
                )
            ),
            check_version=env_bool("PROOFGATE_CHECK_VERSION", True),
            verify_crypto=env_bool("PROOFGATE_VERIFY_CRYPTO", True),
            current_schema_version=os.getenv(
                "PROOFGATE_CURRENT_SCHEMA_VERSION", CURRENT_VERSION
            ),
            min_supported_schema_version=os.getenv(
                "PROOFGATE_MIN_SUPPORTED_SCHEMA_VERSION", MIN_SUPPORTED_VERSION
            ),
        )

    model_config = {
        "frozen": True,
    }
