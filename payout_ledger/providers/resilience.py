"""
Resilience primitives: circuit breaker and retry with exponential backoff.

These wrap explorer calls so transient failures are retried, permanent ones
surface immediately, and a degraded provider stops being hammered.
One breaker and one usage tracker are shared by every caller in the process.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from ..alerts import AlertSink, NullAlertSink
from ..core.errors import CircuitOpenError, InvalidApiKeyError
from .usage import UsageTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry with exponential backoff (delays 1s, 2s, 4s by default)."""
    max_retries: int = 3
    base_delay_s: float = 1.0
    max_delay_s: float = 30.0
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number attempt+1 (attempt is 0-based)."""
        return min(self.base_delay_s * (self.backoff_factor ** attempt), self.max_delay_s)


class CircuitState(str, enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class BreakerState:
    state: str
    failure_count: int
    next_attempt_allowed_at: Optional[float]

    def to_dict(self) -> dict:
        d = asdict(self)
        if self.next_attempt_allowed_at is not None:
            d["next_attempt_allowed_at"] = datetime.fromtimestamp(
                self.next_attempt_allowed_at, tz=timezone.utc
            ).isoformat(timespec="seconds")
        return d


class CircuitBreaker:
    """
    Circuit breaker preventing repeated calls to a failing provider.

    States:
    - CLOSED: Normal operation, requests pass through; failures are counted.
    - OPEN: Provider is failing, requests are rejected with CircuitOpenError.
    - HALF_OPEN: After the reset timeout, exactly one trial request is allowed.

    Transitions:
    - CLOSED -> OPEN: After `failure_threshold` consecutive failures.
    - OPEN -> HALF_OPEN: On the first call at or after `next_attempt_allowed_at`.
    - HALF_OPEN -> CLOSED: If the trial succeeds (failure count reset).
    - HALF_OPEN -> OPEN: If the trial fails (count incremented, timer restarted).
    """

    def __init__(
        self,
        provider_name: str = "explorer",
        *,
        failure_threshold: int = 5,
        reset_timeout_s: float = 60.0,
        clock: Callable[[], float] = time.time,
        alert_sink: Optional[AlertSink] = None,
    ) -> None:
        self.provider_name = provider_name
        self.failure_threshold = failure_threshold
        self.reset_timeout_s = reset_timeout_s
        self._clock = clock
        self._alert_sink = alert_sink or NullAlertSink()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._next_attempt_allowed_at: Optional[float] = None
        self._trial_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state.value

    def execute(self, fn: Callable[[], T]) -> T:
        """Run fn through the breaker. Raises CircuitOpenError without calling fn when OPEN."""
        self._before_call()
        try:
            result = fn()
        except Exception:
            self._record_failure()
            raise
        self._record_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            if self._state is CircuitState.OPEN:
                until = self._next_attempt_allowed_at
                if until is not None and self._clock() < until:
                    raise self._open_error()
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = True
                logger.warning(
                    "Circuit breaker HALF_OPEN for %s, allowing trial request",
                    self.provider_name,
                )
            elif self._state is CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    raise self._open_error()
                self._trial_in_flight = True

    def _open_error(self) -> CircuitOpenError:
        until = self._next_attempt_allowed_at
        until_iso = (
            datetime.fromtimestamp(until, tz=timezone.utc).isoformat(timespec="seconds")
            if until is not None
            else "trial completes"
        )
        logger.warning("Circuit breaker OPEN for %s, request blocked", self.provider_name)
        return CircuitOpenError(f"{self.provider_name} circuit open until {until_iso}")

    def _record_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                logger.warning(
                    "Circuit breaker CLOSED for %s after successful trial",
                    self.provider_name,
                )
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._next_attempt_allowed_at = None
            self._trial_in_flight = False

    def _record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._trial_in_flight = False
            next_at: Optional[float] = None
            if self._state is CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                next_at = self._trip()
            failure_count = self._failure_count
        if next_at is not None:
            self._alert_sink.send_alert(
                self.provider_name,
                "Circuit breaker opened - too many consecutive failures",
                "CRITICAL",
                {
                    "failure_count": failure_count,
                    "reset_timeout_s": self.reset_timeout_s,
                    "next_attempt_allowed_at": datetime.fromtimestamp(
                        next_at, tz=timezone.utc
                    ).isoformat(timespec="seconds"),
                },
            )

    def _trip(self) -> float:
        """Open the circuit; returns the time the next trial is allowed."""
        self._state = CircuitState.OPEN
        next_at = self._clock() + self.reset_timeout_s
        self._next_attempt_allowed_at = next_at
        logger.warning(
            "Circuit breaker OPEN for %s after %d failures, retry after %.0fs",
            self.provider_name, self._failure_count, self.reset_timeout_s,
        )
        return next_at

    def get_state(self) -> BreakerState:
        with self._lock:
            return BreakerState(
                state=self._state.value,
                failure_count=self._failure_count,
                next_attempt_allowed_at=self._next_attempt_allowed_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._next_attempt_allowed_at = None
            self._trial_in_flight = False


def fetch_with_retry(
    request_fn: Callable[[], T],
    *,
    retry_config: Optional[RetryConfig] = None,
    usage_tracker: Optional[UsageTracker] = None,
    sleep: Callable[[float], None] = time.sleep,
    context: str = "explorer",
) -> T:
    """
    Execute one provider request with retries and exponential backoff.

    - InvalidApiKeyError: raised immediately, never retried.
    - Any other exception (rate limit, timeout, network): retried up to
      max_retries times; the last error propagates once retries are exhausted.
    - Usage is tracked once per attempt (per HTTP round-trip).
    """
    cfg = retry_config or RetryConfig()
    attempt = 0
    while True:
        if usage_tracker is not None:
            usage_tracker.track_call()
        try:
            return request_fn()
        except InvalidApiKeyError:
            raise
        except Exception as exc:
            if attempt >= cfg.max_retries:
                raise
            delay = cfg.delay_for(attempt)
            attempt += 1
            logger.warning(
                "Retry %d/%d for %s in %.1fs: %s: %s",
                attempt, cfg.max_retries, context, delay, type(exc).__name__, exc,
            )
            sleep(delay)
