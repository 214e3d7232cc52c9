"""
Circuit breaker tests for the provider gateway.
"""

import time

import pybreaker
import pytest

from app.infrastructure.circuit_breaker import (
    CircuitBreakerError,
    ensure_available,
    provider_breaker,
    record_result,
)

pytestmark = pytest.mark.circuit_breaker


@pytest.fixture
def breaker():
    return pybreaker.CircuitBreaker(fail_max=3, reset_timeout=60, name="test_breaker")


def test_breaker_configuration():
    assert provider_breaker.fail_max == 5
    assert provider_breaker.reset_timeout == 60
    assert provider_breaker.current_state == pybreaker.STATE_CLOSED


def test_opens_after_consecutive_failures(breaker):
    for _ in range(3):
        record_result(False, breaker)

    assert breaker.current_state == pybreaker.STATE_OPEN
    with pytest.raises(CircuitBreakerError):
        ensure_available(breaker)


def test_success_resets_failure_count(breaker):
    record_result(False, breaker)
    record_result(False, breaker)
    record_result(True, breaker)
    record_result(False, breaker)

    assert breaker.current_state == pybreaker.STATE_CLOSED
    assert breaker.fail_counter == 1
    ensure_available(breaker)


@pytest.fixture
def tripped():
    breaker = pybreaker.CircuitBreaker(fail_max=2, reset_timeout=0, name="fast_reset")
    record_result(False, breaker)
    record_result(False, breaker)
    assert breaker.current_state == pybreaker.STATE_OPEN
    time.sleep(0.01)
    return breaker


def test_reset_timeout_lets_one_trial_call_through(tripped):
    ensure_available(tripped)

    # nothing is decided until the real call reports back
    assert tripped.current_state == pybreaker.STATE_HALF_OPEN

    record_result(True, tripped)

    assert tripped.current_state == pybreaker.STATE_CLOSED
    assert tripped.fail_counter == 0


def test_failed_trial_call_reopens(tripped):
    ensure_available(tripped)
    record_result(False, tripped)

    assert tripped.current_state == pybreaker.STATE_OPEN
