"""Retry driver with exponential backoff, built on tenacity.

Every fallible call of the setup workflow goes through ``retry_with_backoff``.
An operation is a zero-argument callable. It fails when it returns ``False``
or raises an ``Exception``; any other return value counts as success. The
driver reports a boolean outcome and never raises on behalf of the operation.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
)

from workshop_setup.domain.config.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Any]


class PermanentFailure(Exception):
    """Raised by an operation when retrying cannot help."""

    pass


class _Cancelled(Exception):
    pass


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class RetryAttempt:
    """One invocation of an operation by the driver.

    Attributes:
        attempt_number: 1-based attempt counter
        max_attempts: Attempt bound of the policy in use
        outcome: Success or failure of this attempt
        delay_before_next: Seconds until the next attempt (None when no attempt follows)
        error: Exception raised by the attempt, if any
    """

    attempt_number: int
    max_attempts: int
    outcome: AttemptOutcome
    delay_before_next: Optional[float] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS


def _is_retryable_exception(exception: BaseException) -> bool:
    # KeyboardInterrupt and friends are not operation failures
    if not isinstance(exception, Exception):
        return False
    return not isinstance(exception, (PermanentFailure, _Cancelled))


def retry_with_backoff(
    operation: Operation,
    policy: Optional[RetryPolicy] = None,
    *,
    on_attempt: Optional[Callable[[RetryAttempt], None]] = None,
    cancel: Optional[threading.Event] = None,
    sleep: Optional[Callable[[float], Any]] = None,
) -> bool:
    """Run ``operation`` until it succeeds or the policy's attempts are exhausted.

    The delay after failed attempt n is ``initial_delay * backoff_multiplier ** (n - 1)``.
    No delay follows the final attempt.

    Args:
        operation: Zero-argument callable, safe to invoke repeatedly
        policy: Retry policy (defaults to 10 attempts, 2s initial delay, doubling)
        on_attempt: Callback receiving a RetryAttempt after every attempt
        cancel: Event checked before each attempt and each sleep
        sleep: Sleep function (defaults to time.sleep, or cancel.wait when cancellable)

    Returns:
        True if some attempt succeeded, False if all attempts failed
    """
    policy = policy or RetryPolicy()
    if sleep is None:
        sleep = cancel.wait if cancel is not None else time.sleep

    # Per-invocation state; nothing is shared between calls
    attempts = {"n": 0}

    def _report(outcome: AttemptOutcome, delay: Optional[float], error: Optional[BaseException]) -> None:
        if on_attempt is not None:
            on_attempt(
                RetryAttempt(
                    attempt_number=attempts["n"],
                    max_attempts=policy.max_attempts,
                    outcome=outcome,
                    delay_before_next=delay,
                    error=error,
                )
            )

    def _attempt() -> bool:
        if cancel is not None and cancel.is_set():
            raise _Cancelled()
        attempts["n"] += 1
        return operation() is not False

    def _before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        delay = retry_state.next_action.sleep if retry_state.next_action is not None else None
        logger.debug(
            f"Attempt {retry_state.attempt_number}/{policy.max_attempts} failed"
            f"{f': {error}' if error else ''}; retrying in {delay}s"
        )
        _report(AttemptOutcome.FAILURE, delay, error)

    def _on_exhausted(retry_state: RetryCallState) -> bool:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        logger.debug(f"Operation failed after {retry_state.attempt_number} attempt(s)")
        _report(AttemptOutcome.FAILURE, None, error)
        return False

    stop = stop_after_attempt(policy.max_attempts)
    if cancel is not None:
        stop = stop | stop_when_event_set(cancel)

    retrying = Retrying(
        stop=stop,
        wait=wait_exponential(
            multiplier=policy.initial_delay,
            exp_base=policy.backoff_multiplier,
        ),
        retry=retry_if_result(lambda succeeded: succeeded is False)
        | retry_if_exception(_is_retryable_exception),
        sleep=sleep,
        before_sleep=_before_sleep,
        retry_error_callback=_on_exhausted,
    )

    try:
        succeeded = bool(retrying(_attempt))
    except PermanentFailure as e:
        logger.debug(f"Operation failed permanently on attempt {attempts['n']}: {e}")
        _report(AttemptOutcome.FAILURE, None, e)
        return False
    except _Cancelled:
        logger.debug(f"Operation cancelled after {attempts['n']} attempt(s)")
        return False

    # Outside the retried callable: a raising hook must not re-run a succeeded operation
    if succeeded:
        _report(AttemptOutcome.SUCCESS, None, None)
    return succeeded


class OutputSlot(Generic[T]):
    """Keeps the value produced by the successful attempt of a retried callable.

    The driver's contract is boolean only, so operations that produce data
    hand it back through a slot::

        slot = OutputSlot()
        if retry_with_backoff(slot.capture(lambda: client.fetch()), policy):
            use(slot.value)
    """

    def __init__(self) -> None:
        self.value: Optional[T] = None
        self.filled = False

    def capture(self, func: Callable[[], T]) -> Operation:
        """Wrap ``func`` into an operation that stores its return value"""

        def _operation() -> bool:
            self.value = func()
            self.filled = True
            return True

        return _operation


def log_attempts(target: logging.Logger, label: str) -> Callable[[RetryAttempt], None]:
    """Build an ``on_attempt`` hook that reports progress of ``label`` to ``target``"""

    def _log(attempt: RetryAttempt) -> None:
        progress = f"{label}: attempt {attempt.attempt_number}/{attempt.max_attempts}"
        if attempt.succeeded:
            target.info(f"{progress} succeeded")
        elif attempt.delay_before_next is not None:
            reason = f" ({attempt.error})" if attempt.error else ""
            target.warning(f"{progress} failed{reason}. Waiting {attempt.delay_before_next:g}s before retry...")
        else:
            reason = f" ({attempt.error})" if attempt.error else ""
            target.warning(f"{progress} failed{reason}. Giving up")

    return _log
