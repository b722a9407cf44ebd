from datetime import datetime, timedelta

import pytest

from proofgate.app.checks.temporal import DEFAULT_MAX_AGE, is_expired, proof_age
from proofgate.tests.fixtures.envelope_factory import NOW, aged, make_envelope


def test_default_max_age_is_one_hour():
    assert DEFAULT_MAX_AGE == timedelta(hours=1)


@pytest.mark.parametrize(
    "age, expired",
    [
        (timedelta(0), False),
        (timedelta(minutes=59), False),
        (timedelta(hours=1), False),  # boundary: age == max_age is still fresh
        (timedelta(hours=1, seconds=1), True),
        (timedelta(hours=25), True),
    ],
)
def test_expiry_boundary(age, expired):
    envelope = aged(make_envelope(), age)

    assert is_expired(envelope, timedelta(hours=1), NOW) is expired


def test_expiry_is_monotonic_in_time():
    envelope = make_envelope()
    max_age = timedelta(minutes=30)

    seen_expired = False
    for minutes in range(0, 120, 5):
        expired = is_expired(envelope, max_age, NOW + timedelta(minutes=minutes))
        if seen_expired:
            assert expired, "an expired proof must not become fresh again"
        seen_expired = seen_expired or expired

    assert seen_expired


def test_future_timestamp_is_not_expired_but_logged(caplog):
    envelope = aged(make_envelope(), -timedelta(minutes=10))

    with caplog.at_level("WARNING"):
        assert is_expired(envelope, DEFAULT_MAX_AGE, NOW) is False

    assert "in the future" in caplog.text


def test_proof_age_is_measured_from_created_at():
    envelope = aged(make_envelope(), timedelta(minutes=42))

    assert proof_age(envelope, NOW) == timedelta(minutes=42)


def test_naive_now_is_rejected():
    with pytest.raises(ValueError):
        is_expired(make_envelope(), DEFAULT_MAX_AGE, datetime(2026, 10, 18, 12))
