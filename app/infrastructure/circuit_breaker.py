"""
Circuit Breaker for the remote flight provider.

Circuit Breaker Pattern:
- CLOSED: normal operation, requests pass through
- OPEN: too many failures, requests fail immediately
- HALF_OPEN: reset timeout elapsed, the next request probes the provider

Only indeterminate failures (timeouts, transport errors, 5xx after retries)
count against the breaker. A definitive rejection means the provider is up.
"""

import logging

import pybreaker
from pybreaker import CircuitBreaker, CircuitBreakerError

logger = logging.getLogger(__name__)


class ProviderUnavailableError(Exception):
    """Recorded by the breaker when a provider call ended indeterminate."""


provider_breaker = CircuitBreaker(
    fail_max=5,  # Open circuit after 5 consecutive failures
    reset_timeout=60,  # Wait 60 seconds before attempting recovery
    name="provider_circuit_breaker",
)


class CircuitBreakerListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes."""

    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "Circuit breaker state changed",
            extra={
                "breaker_name": self.name,
                "old_state": old_state.name if old_state else None,
                "new_state": new_state.name if new_state else None,
            },
        )


provider_breaker.add_listener(CircuitBreakerListener("provider"))


def _trial():
    # a generator defers the outcome: pybreaker stays half-open until the
    # caller reports the real provider call through record_result
    yield


def ensure_available(breaker: CircuitBreaker = provider_breaker) -> None:
    """
    Fail fast while the circuit is open.

    Once the reset timeout has elapsed the breaker moves to half-open and the
    next real request is the trial call: its outcome, fed to record_result,
    closes the circuit or opens it again.

    Raises:
        CircuitBreakerError: the circuit is open.
    """
    if breaker.current_state == pybreaker.STATE_OPEN:
        breaker.call(_trial)


def record_result(succeeded: bool, breaker: CircuitBreaker = provider_breaker) -> None:
    """Feed the outcome of an async call into the (synchronous) breaker."""

    def _outcome() -> None:
        if not succeeded:
            raise ProviderUnavailableError()

    try:
        breaker.call(_outcome)
    except (ProviderUnavailableError, CircuitBreakerError):
        if breaker.current_state == pybreaker.STATE_OPEN:
            logger.error("Provider circuit open", extra={"breaker_name": breaker.name})


__all__ = [
    "provider_breaker",
    "ensure_available",
    "record_result",
    "CircuitBreakerError",
    "ProviderUnavailableError",
]
