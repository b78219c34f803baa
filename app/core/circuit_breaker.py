"""
Circuit breaker for outbound calls to external services.

State lives in the Django cache so every web and Celery worker sees the
same view of a failing dependency (Redis in production).

States:
    - CLOSED: calls pass through
    - OPEN: calls fail fast until recovery_timeout has elapsed
    - HALF_OPEN: a limited number of probe calls are let through

Usage:
    from core.circuit_breaker import CircuitBreaker, CircuitOpenError

    circuit = CircuitBreaker("gateway:paystack", failure_threshold=5)

    try:
        with circuit.call():
            response = session.get(url, timeout=10)
    except CircuitOpenError:
        ...  # fail fast, the provider is known to be down

Note:
    Cache errors never block calls: a breaker that can't read its own
    state reports itself as available.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from django.core.cache import cache

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from collections.abc import Generator

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker instance."""

    failure_threshold: int = 5
    """Consecutive failures before the circuit opens."""

    recovery_timeout: int = 60
    """Seconds the circuit stays open before probing."""

    half_open_max_calls: int = 1
    """Probe calls allowed while half-open."""

    cache_ttl: int = 3600
    """TTL for cache keys in seconds (must exceed recovery_timeout)."""


class CircuitOpenError(ExternalServiceError):
    """
    Raised when a call is attempted through an open circuit.

    The dependency was not contacted; this is a fail-fast signal, not a
    failed call.
    """

    default_error_code: str = "CIRCUIT_OPEN"

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("is_retryable", True)
        super().__init__(message, **kwargs)


class CircuitBreaker:
    """
    Distributed circuit breaker backed by the Django cache.

    Attributes:
        name: Unique identifier, also used as the cache key namespace
        config: Thresholds and timeouts
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        half_open_max_calls: int = 1,
    ):
        self.name = name
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            half_open_max_calls=half_open_max_calls,
        )

        self._state_key = f"circuit:{name}:state"
        self._failures_key = f"circuit:{name}:failures"
        self._opened_at_key = f"circuit:{name}:opened_at"
        self._half_open_calls_key = f"circuit:{name}:half_open_calls"

    def is_available(self) -> bool:
        """
        Check whether the circuit lets a call through.

        An open circuit whose recovery timeout has elapsed moves to
        half-open and counts this call as a probe.
        """
        try:
            state = self._get_state()

            if state == CircuitState.OPEN:
                opened_at = cache.get(self._opened_at_key)
                if opened_at is None or (
                    time.time() - opened_at < self.config.recovery_timeout
                ):
                    return False
                self._set_state(CircuitState.HALF_OPEN)
                cache.set(self._half_open_calls_key, 0, timeout=self.config.cache_ttl)
                logger.info(
                    "Circuit breaker transitioning to half-open",
                    extra={"circuit": self.name},
                )
                state = CircuitState.HALF_OPEN

            if state == CircuitState.HALF_OPEN:
                probes = cache.get(self._half_open_calls_key, 0)
                if probes >= self.config.half_open_max_calls:
                    return False
                self._incr(self._half_open_calls_key)

            return True

        except Exception as e:
            logger.warning(
                f"Circuit breaker cache error, failing open: {e}",
                extra={"circuit": self.name},
            )
            return True

    def record_success(self) -> None:
        """Record a successful call; closes a half-open circuit."""
        try:
            if self._get_state() == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED)
                logger.info(
                    "Circuit breaker closed after successful recovery",
                    extra={"circuit": self.name},
                )
            cache.set(self._failures_key, 0, timeout=self.config.cache_ttl)
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record success: {e}",
                extra={"circuit": self.name},
            )

    def record_failure(self) -> None:
        """Record a failed call; opens the circuit past the threshold."""
        try:
            if self._get_state() == CircuitState.HALF_OPEN:
                self._open()
                logger.warning(
                    "Circuit breaker reopened after failed recovery attempt",
                    extra={"circuit": self.name},
                )
                return

            failures = self._incr(self._failures_key)
            if failures >= self.config.failure_threshold:
                self._open()
                logger.warning(
                    f"Circuit breaker opened after {failures} failures",
                    extra={
                        "circuit": self.name,
                        "failure_count": failures,
                        "threshold": self.config.failure_threshold,
                    },
                )
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record failure: {e}",
                extra={"circuit": self.name},
            )

    @contextmanager
    def call(self) -> Generator[None, None, None]:
        """
        Guard a block of code with the circuit.

        Raises:
            CircuitOpenError: If the circuit does not allow the call
        """
        if not self.is_available():
            raise CircuitOpenError(
                f"Circuit '{self.name}' is open",
                details={"circuit": self.name},
            )

        try:
            yield
        except Exception:
            self.record_failure()
            raise
        self.record_success()

    def get_status(self) -> dict:
        """Current circuit status for health checks and monitoring."""
        try:
            state = self._get_state()
            status = {
                "name": self.name,
                "state": state.value,
                "failure_count": cache.get(self._failures_key, 0),
                "failure_threshold": self.config.failure_threshold,
            }
            opened_at = cache.get(self._opened_at_key)
            if state != CircuitState.CLOSED and opened_at:
                elapsed = time.time() - opened_at
                status["opened_seconds_ago"] = int(elapsed)
                status["recovery_in_seconds"] = max(
                    0, int(self.config.recovery_timeout - elapsed)
                )
            return status
        except Exception as e:
            return {"name": self.name, "state": "unknown", "error": str(e)}

    # =========================================================================
    # Private cache operations
    # =========================================================================

    def _get_state(self) -> CircuitState:
        state_str = cache.get(self._state_key, CircuitState.CLOSED.value)
        try:
            return CircuitState(state_str)
        except ValueError:
            return CircuitState.CLOSED

    def _set_state(self, state: CircuitState) -> None:
        cache.set(self._state_key, state.value, timeout=self.config.cache_ttl)

    def _open(self) -> None:
        self._set_state(CircuitState.OPEN)
        cache.set(self._opened_at_key, time.time(), timeout=self.config.cache_ttl)

    def _incr(self, key: str) -> int:
        try:
            return cache.incr(key)
        except ValueError:
            # Key doesn't exist yet
            cache.set(key, 1, timeout=self.config.cache_ttl)
            return 1

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self._get_state().value})"
