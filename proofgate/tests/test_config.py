from datetime import timedelta

import pytest
from pydantic import ValidationError

from proofgate.app.config import VerificationConfig
from proofgate.app.core.settings import ServiceSettings


ENV_VARS = (
    "PROOFGATE_MAX_PROOF_AGE_SECONDS",
    "PROOFGATE_CHECK_VERSION",
    "PROOFGATE_VERIFY_CRYPTO",
    "PROOFGATE_CURRENT_SCHEMA_VERSION",
    "PROOFGATE_MIN_SUPPORTED_SCHEMA_VERSION",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# VerificationConfig
# ---------------------------------------------------------------------------


def test_defaults():
    config = VerificationConfig()

    assert config.max_age == timedelta(hours=1)
    assert config.check_version is True
    assert config.verify_crypto is True
    assert config.current_schema_version == "1.0.0"
    assert config.min_supported_schema_version == "1.0.0"


def test_from_env_without_variables_matches_defaults(clean_env):
    assert VerificationConfig.from_env() == VerificationConfig()


def test_from_env_reads_every_variable(clean_env):
    clean_env.setenv("PROOFGATE_MAX_PROOF_AGE_SECONDS", "86400")
    clean_env.setenv("PROOFGATE_CHECK_VERSION", "false")
    clean_env.setenv("PROOFGATE_VERIFY_CRYPTO", "0")
    clean_env.setenv("PROOFGATE_CURRENT_SCHEMA_VERSION", "1.2.0")
    clean_env.setenv("PROOFGATE_MIN_SUPPORTED_SCHEMA_VERSION", "1.1.0")

    config = VerificationConfig.from_env()

    assert config.max_age == timedelta(days=1)
    assert config.check_version is False
    assert config.verify_crypto is False
    assert config.version_policy.current == "1.2.0"
    assert config.version_policy.min_supported == "1.1.0"


@pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
def test_env_bool_truthy_values(clean_env, raw):
    clean_env.setenv("PROOFGATE_CHECK_VERSION", raw)

    assert VerificationConfig.from_env().check_version is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_age": timedelta(0)},
        {"max_age": timedelta(seconds=-5)},
        {"current_schema_version": "one"},
        {"min_supported_schema_version": "1.0"},
        {"current_schema_version": "1.0.0", "min_supported_schema_version": "1.0.1"},
    ],
)
def test_invalid_configuration_fails_fast(overrides):
    with pytest.raises(ValidationError):
        VerificationConfig(**overrides)


def test_version_policy_is_built_once_from_the_range():
    config = VerificationConfig(
        current_schema_version="1.2.0",
        min_supported_schema_version="1.1.0",
    )

    assert config.version_policy is config.version_policy
    assert config.version_policy.current == "1.2.0"
    assert config.version_policy.min_supported == "1.1.0"


def test_invalid_range_error_names_the_range():
    with pytest.raises(ValidationError, match="supported schema range"):
        VerificationConfig(min_supported_schema_version="2.0.0")


def test_config_is_read_only():
    config = VerificationConfig()

    with pytest.raises(ValidationError):
        config.check_version = False


# ---------------------------------------------------------------------------
# ServiceSettings
# ---------------------------------------------------------------------------


def test_service_settings_from_env(monkeypatch):
    monkeypatch.setenv("PROOFGATE_MAX_ENVELOPE_SIZE_KB", "64")
    monkeypatch.setenv("PROOFGATE_LOG_LEVEL", "debug")
    monkeypatch.setenv("PROOFGATE_PRODUCER_VERSION", "wallet-2.0")

    settings = ServiceSettings(_env_file=None)

    assert settings.max_envelope_size_kb == 64
    assert settings.log_level == "DEBUG"
    assert settings.producer_version == "wallet-2.0"


def test_service_settings_reject_out_of_range_size(monkeypatch):
    monkeypatch.setenv("PROOFGATE_MAX_ENVELOPE_SIZE_KB", "0")

    with pytest.raises(ValidationError):
        ServiceSettings(_env_file=None)
