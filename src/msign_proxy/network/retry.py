"""
Classified retry with exponential backoff.

Every communication error carries an ErrorKind tag; a static table maps
kinds to transient or fatal.  Transient failures are retried after
``backoff ** attempt`` seconds, fatal ones propagate at once.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_CLASSIFICATION",
    "DEFAULT_RETRY_POLICY",
    "Classification",
    "RetryExecutor",
    "RetryPolicy",
]

import enum
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeVar

from ..constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_BACKOFF
from ..errors import CommunicationError, ErrorKind, ServiceUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class Classification(str, enum.Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


DEFAULT_CLASSIFICATION: Mapping[ErrorKind, Classification] = MappingProxyType(
    {
        ErrorKind.CONNECTION_FAILED: Classification.TRANSIENT,
        ErrorKind.TIMEOUT: Classification.TRANSIENT,
        ErrorKind.ENDPOINT_UNREACHABLE: Classification.TRANSIENT,
        ErrorKind.TLS: Classification.FATAL,
        ErrorKind.PROTOCOL: Classification.FATAL,
        ErrorKind.MALFORMED_REQUEST: Classification.FATAL,
        ErrorKind.MESSAGE_TOO_LARGE: Classification.FATAL,
        ErrorKind.GATEWAY_FAULT: Classification.FATAL,
    }
)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry, how long to wait, and what is worth retrying."""

    max_retries: int = DEFAULT_MAX_RETRIES
    backoff: float = DEFAULT_RETRY_BACKOFF
    classification: Mapping[ErrorKind, Classification] = field(
        default_factory=lambda: DEFAULT_CLASSIFICATION, repr=False, compare=False
    )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number attempt (1-based)."""
        return self.backoff**attempt

    def classify(self, exc: BaseException) -> Classification:
        """Unknown kinds and non-communication errors are fatal."""
        if isinstance(exc, CommunicationError):
            return self.classification.get(exc.kind, Classification.FATAL)
        return Classification.FATAL


DEFAULT_RETRY_POLICY = RetryPolicy()


class RetryExecutor:
    """Runs an operation under a RetryPolicy.

    Stateless between calls; the sleep function is injectable so tests
    can observe delays without waiting.  Sleeping only suspends the
    calling thread.
    """

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.policy = policy
        self._sleep = sleep

    def execute(self, operation: Callable[[], _T], *, name: str = "request") -> _T:
        """
        Call operation until it succeeds, fails fatally, or retries run out.

        The operation must fetch its channel on every call so a channel
        recreated after a fault is visible to the next attempt.

        Returns:
            Result of the first successful call.

        Raises:
            ServiceUnavailableError: Transient failures on every attempt.
            Any fatal error from operation, unchanged and immediately.
        """
        policy = self.policy
        for attempt in range(1, policy.max_attempts + 1):
            try:
                return operation()
            except CommunicationError as exc:  # noqa: PERF203 -- try-except is the retry mechanism
                if policy.classify(exc) is Classification.FATAL:
                    raise
                if attempt >= policy.max_attempts:
                    _logger.error(
                        "%s failed after %d attempts: %s", name, policy.max_attempts, exc
                    )
                    raise ServiceUnavailableError(
                        f"Signing gateway unavailable: {exc}",
                        last_error=exc,
                        attempts=attempt,
                    ) from exc

                delay = policy.delay(attempt)
                _logger.warning(
                    "%s failed (attempt %d/%d, %s): %s. Retrying in %.1fs...",
                    name,
                    attempt,
                    policy.max_attempts,
                    exc.kind.value,
                    exc,
                    delay,
                )
                self._sleep(delay)

        raise RuntimeError("Retry logic error")
