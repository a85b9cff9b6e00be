"""
Retry policies and the fixed-interval retry loop
"""
import threading
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from ...core.exceptions import (
    RangeNotSupportedError,
    RetriesExhaustedError,
    TransferError,
    TransferInterrupted,
)
from ...core.interfaces import RetryPolicy
from ...core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# 408 Request Timeout and 429 Too Many Requests are worth waiting out
_TRANSIENT_CLIENT_STATUSES = (408, 429)


class AlwaysRetryPolicy(RetryPolicy):
    """Retry unconditionally (default)"""

    def should_retry(self, error: Exception) -> bool:
        return True


class NeverRetryPolicy(RetryPolicy):
    """Fail on the first error"""

    def should_retry(self, error: Exception) -> bool:
        return False


class LoggingRetryPolicy(RetryPolicy):
    """Log the failure with its traceback, then retry"""

    def __init__(self, name: str = "transfer"):
        self._logger = get_logger(f"{__name__}.{name}")

    def should_retry(self, error: Exception) -> bool:
        self._logger.warning("Retrying after error: %s", error, exc_info=error)
        return True


class TransientErrorRetryPolicy(RetryPolicy):
    """
    Stop on errors that will not go away by themselves.

    Client-side HTTP statuses (4xx other than 408/429) and a source that
    ignores byte ranges are permanent; everything else is retried.
    """

    def should_retry(self, error: Exception) -> bool:
        if isinstance(error, RangeNotSupportedError):
            return False
        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int) and 400 <= status_code < 500:
            return status_code in _TRANSIENT_CLIENT_STATUSES
        return True


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise TransferInterrupted once the event is set"""
    if cancel_event is not None and cancel_event.is_set():
        raise TransferInterrupted("Transfer interrupted")


class Retrier:
    """
    Fixed-interval retry loop shared by the source and the uploader.

    Every call() gets a fresh budget of max_try_count attempts.
    """

    def __init__(
        self,
        max_try_count: int,
        retry_interval_ms: int,
        policy: RetryPolicy,
        retryable: Tuple[Type[BaseException], ...],
        error_cls: Type[TransferError],
        exhausted_cls: Type[RetriesExhaustedError],
        fatal: Tuple[Type[BaseException], ...] = (),
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize retrier.

        Args:
            max_try_count: Attempts per call
            retry_interval_ms: Pause between attempts
            policy: Decides whether an error is retried
            retryable: Exception types handed to the policy
            error_cls: Raised (chained) when the policy rejects an error
            exhausted_cls: Raised when every attempt failed
            fatal: Exception types re-raised immediately
            sleep: Sleep function, replaceable in tests
            cancel_event: Optional cancellation flag
        """
        self.max_try_count = max_try_count
        self.retry_interval_ms = retry_interval_ms
        self.policy = policy
        self.retryable = retryable
        self.error_cls = error_cls
        self.exhausted_cls = exhausted_cls
        self.fatal = fatal
        self.sleep = sleep
        self.cancel_event = cancel_event

    def call(self, operation: Callable[[], T], description: str) -> T:
        """
        Run operation until it succeeds, the policy gives up or attempts run out.

        Args:
            operation: Zero-argument callable
            description: Used in log lines and error messages

        Returns:
            Result of operation
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_try_count + 1):
            check_cancelled(self.cancel_event)
            try:
                return operation()
            except self.fatal:
                raise
            except self.retryable as e:
                last_error = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    description, attempt, self.max_try_count, e,
                )
                if not self.policy.should_retry(e):
                    if isinstance(e, self.error_cls):
                        raise
                    raise self.error_cls(f"{description} failed: {e}") from e

            if attempt < self.max_try_count:
                self.wait()

        raise self.exhausted_cls(
            f"{description}: giving up after {self.max_try_count} attempts",
            attempts=self.max_try_count,
        ) from last_error

    def wait(self) -> None:
        """Sleep one retry interval, waking early on cancellation"""
        seconds = self.retry_interval_ms / 1000.0
        if self.cancel_event is not None:
            if self.cancel_event.wait(seconds):
                raise TransferInterrupted("Transfer interrupted")
        elif seconds > 0:
            self.sleep(seconds)
