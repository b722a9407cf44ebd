"""
Settings for the proofgate HTTP service.

Pydantic v2 settings management: strict validation and fast failure on
invalid configuration. Verification behavior itself is configured by
proofgate.app.config.VerificationConfig.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from proofgate.app.producer.export import DEFAULT_PRODUCER_VERSION


class ServiceSettings(BaseSettings):
    """Service settings parsed from the environment."""

    # ---------------------------------------------------------------------
    # Operational Boundaries
    # ---------------------------------------------------------------------

    max_envelope_size_kb: Annotated[
        int,
        Field(
            default=256,
            ge=1,
            le=4096,
            description="Largest accepted envelope document, in kilobytes",
        ),
    ]

    # ---------------------------------------------------------------------
    # Producer identity
    # ---------------------------------------------------------------------

    producer_version: Annotated[
        str,
        Field(
            default=DEFAULT_PRODUCER_VERSION,
            min_length=1,
            description="Stamped into envelopes built by /proofs/export",
        ),
    ]

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_prefix="PROOFGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> ServiceSettings:
    """Singleton within process."""
    return ServiceSettings()
