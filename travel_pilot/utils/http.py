"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

# Client errors that still signal a transient upstream condition.
_TRANSIENT_CLIENT_STATUSES = frozenset({408, 429})


class HTTPCallError(RuntimeError):
    """Base class for failures of an outbound HTTP exchange."""


class TransportError(HTTPCallError):
    """Raised when the connection fails before a response is received."""


class UpstreamStatusError(HTTPCallError):
    """Raised when the upstream service answers with a non-success status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        message = f"Upstream responded with HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CallExhaustedError(HTTPCallError):
    """Raised once every attempt allowed by the retry policy has failed."""

    def __init__(self, attempts: int, last_error: HTTPCallError) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Request failed after {attempts} attempt(s): {last_error}")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff.

    ``max_retries`` counts retries beyond the first attempt, so a call is
    attempted at most ``max_retries + 1`` times. The wait before retry ``i``
    (zero based) is ``initial_delay * backoff_multiplier ** i`` seconds.
    """

    max_retries: int = 5
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.0
    retry_client_errors: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")

    def delay_for(self, retry_index: int) -> float:
        delay = self.initial_delay * self.backoff_multiplier**retry_index
        if self.jitter:
            delay *= 1 + random.uniform(-self.jitter, self.jitter)
        return delay

    def is_retryable_status(self, status_code: int) -> bool:
        if 400 <= status_code < 500 and status_code not in _TRANSIENT_CLIENT_STATUSES:
            return self.retry_client_errors
        return True


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **kwargs,
) -> httpx.Response:
    """Invoke ``func`` until it yields a 2xx response or the policy gives up."""
    policy = retry_policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            response = await func(*args, **kwargs)
        except httpx.HTTPError as exc:
            failure: HTTPCallError = TransportError(str(exc) or type(exc).__name__)
            failure.__cause__ = exc
        else:
            if response.is_success:
                return response
            failure = UpstreamStatusError(response.status_code, response.reason_phrase)
            if not policy.is_retryable_status(response.status_code):
                raise failure

        retry_index = attempt - 1
        if retry_index >= policy.max_retries:
            raise CallExhaustedError(attempt, failure) from failure

        delay = policy.delay_for(retry_index)
        logger.warning(
            "Attempt %d/%d failed (%s); retrying in %.2fs.",
            attempt,
            policy.max_retries + 1,
            failure,
            delay,
        )
        await sleep(delay)


__all__ = [
    "CallExhaustedError",
    "HTTPCallError",
    "RetryPolicy",
    "TransportError",
    "UpstreamStatusError",
    "request_with_retry",
]
