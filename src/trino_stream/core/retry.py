"""Retry and back-off policy for statement protocol requests.

Network failures (refused, reset, timed out) and gateway/overload status
codes are transient and retried with exponential back-off and jitter.
Everything else, including any response carrying a structured query
error, is fatal and surfaced immediately.
"""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import StrEnum
from typing import TYPE_CHECKING

import requests
import structlog

from trino_stream.core.exceptions import CancellationError, ProtocolError
from trino_stream.core.logging import LogEvent

if TYPE_CHECKING:
    from collections.abc import Callable

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    requests.ConnectionError,
    requests.Timeout,
)


class Outcome(StrEnum):
    SUCCESS = "success"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class RetryDecision:
    delay: float
    attempt: int
    terminal: bool


def _has_query_error(response: requests.Response) -> bool:
    try:
        payload = response.json()
    except ValueError:
        return False
    return isinstance(payload, dict) and bool(payload.get("error"))


def parse_retry_after(value: str | None) -> float | None:
    """Seconds to wait from a Retry-After header (delta seconds or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=UTC)
    return max(0.0, (retry_at - datetime.now(UTC)).total_seconds())


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential back-off.

    Args:
        max_attempts: total attempts per request; 1 disables retries.
        base_delay: delay before the first retry, in seconds.
        max_delay: cap for a single wait.
        max_elapsed: cap for the total time spent waiting for one request.
        jitter: scale each wait by a random factor in [0.5, 1.0).
    """

    max_attempts: int = 5
    base_delay: float = 0.1
    max_delay: float = 30.0
    max_elapsed: float = 120.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)
        if self.base_delay < 0 or self.max_delay < 0 or self.max_elapsed < 0:
            msg = "retry delays must be >= 0"
            raise ValueError(msg)

    def classify(self, outcome: requests.Response | BaseException) -> Outcome:
        if isinstance(outcome, BaseException):
            if isinstance(outcome, TRANSIENT_EXCEPTIONS):
                return Outcome.TRANSIENT
            return Outcome.FATAL
        if outcome.ok:
            return Outcome.SUCCESS
        if outcome.status_code in RETRYABLE_STATUS_CODES and not _has_query_error(
            outcome
        ):
            return Outcome.TRANSIENT
        return Outcome.FATAL

    def backoff(self, attempt: int) -> float:
        delay = self.base_delay * (2 ** (attempt - 1))
        delay = min(self.max_delay, delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay

    def decide(
        self,
        attempt: int,
        waited: float,
        retry_after: float | None = None,
    ) -> RetryDecision:
        """Decide what to do after failed attempt number ``attempt``."""
        if attempt >= self.max_attempts:
            return RetryDecision(delay=0.0, attempt=attempt, terminal=True)
        if retry_after is not None:
            delay = min(self.max_delay, retry_after)
        else:
            delay = self.backoff(attempt)
        if waited + delay > self.max_elapsed:
            return RetryDecision(delay=0.0, attempt=attempt, terminal=True)
        return RetryDecision(delay=delay, attempt=attempt, terminal=False)


def _describe(outcome: requests.Response | BaseException) -> str:
    if isinstance(outcome, BaseException):
        return f"{type(outcome).__name__}: {outcome}"
    return f"HTTP {outcome.status_code}"


def call_with_retry(
    policy: RetryPolicy,
    send: Callable[[], requests.Response],
    cancel_event: threading.Event | None = None,
    description: str = "request",
) -> tuple[requests.Response, int]:
    """Run ``send`` under ``policy``.

    Returns the final response (successful, or a fatal non-2xx the caller
    must interpret) and the number of attempts made. Raises ProtocolError
    when the retry budget is spent and CancellationError when
    ``cancel_event`` is set during a back-off wait.
    """
    log = structlog.get_logger()
    waited = 0.0
    attempt = 0
    while True:
        attempt += 1
        try:
            outcome: requests.Response | BaseException = send()
        except requests.RequestException as e:
            outcome = e

        verdict = policy.classify(outcome)
        if verdict is Outcome.SUCCESS:
            return outcome, attempt  # type: ignore[return-value]
        if verdict is Outcome.FATAL:
            if isinstance(outcome, BaseException):
                msg = f"{description} failed: {_describe(outcome)}"
                raise ProtocolError(msg, outcome) from outcome
            return outcome, attempt

        retry_after = None
        if not isinstance(outcome, BaseException):
            retry_after = parse_retry_after(outcome.headers.get("Retry-After"))
            # give a streamed connection back to the pool
            outcome.close()
        decision = policy.decide(attempt, waited, retry_after)
        if decision.terminal:
            log.warning(
                "retry budget exhausted",
                event_id=LogEvent.RETRY_EXHAUSTED,
                request=description,
                attempts=attempt,
                cause=_describe(outcome),
            )
            msg = (
                f"{description} failed after {attempt} attempts: "
                f"{_describe(outcome)}"
            )
            cause = outcome if isinstance(outcome, BaseException) else None
            raise ProtocolError(msg, cause) from cause

        log.debug(
            "retrying request",
            event_id=LogEvent.RETRY_SCHEDULED,
            request=description,
            attempt=attempt,
            delay=f"{decision.delay:.3f}",
            cause=_describe(outcome),
        )
        if cancel_event is not None:
            if cancel_event.wait(decision.delay):
                raise CancellationError(f"{description} canceled during retry back-off")
        else:
            time.sleep(decision.delay)
        waited += decision.delay
