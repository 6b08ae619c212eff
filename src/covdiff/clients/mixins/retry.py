from collections.abc import Callable
from typing import Any

from tenacity import (
    RetryCallState,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
)

from covdiff.exceptions import NetworkError, RateLimitError, TimeoutError
from covdiff.logger import get_logger


MAX_ALLOWED_RETRIES = 10
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    NetworkError,
    TimeoutError,
    RateLimitError,
    ConnectionError,
)


class RetryMixin:
    """Wraps host API calls in a tenacity retry policy.

    Defaults come from the client's ``max_retries`` and ``backoff_factor``
    attributes when the caller does not pass them.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._retry_logger = get_logger(f"{self.__class__.__name__}.RetryMixin")

    def with_retry(
        self,
        func: Callable[..., Any],
        max_retries: int | None = None,
        backoff_factor: float | None = None,
        max_wait: float = 60.0,
        jitter: bool = True,
        retry_on: tuple[type[Exception], ...] = RETRYABLE_ERRORS,
    ) -> Callable[..., Any]:
        if max_retries is None:
            max_retries = getattr(self, "max_retries", 3)
        if backoff_factor is None:
            backoff_factor = getattr(self, "backoff_factor", 1.0)
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        attempts = min(max_retries, MAX_ALLOWED_RETRIES)
        if max_retries > MAX_ALLOWED_RETRIES:
            self._retry_logger.warning(
                f"max_retries capped at {MAX_ALLOWED_RETRIES} (was {max_retries})"
            )
        name = getattr(func, "__name__", "call")

        def wait_strategy(retry_state: RetryCallState) -> float:
            if retry_state.outcome and retry_state.outcome.failed:
                exception = retry_state.outcome.exception()
                if isinstance(exception, RateLimitError) and exception.reset_time:
                    wait_time = min(exception.reset_time, max_wait)
                    self._retry_logger.warning(
                        f"Rate limit hit. Waiting {wait_time}s until reset."
                    )
                    return float(wait_time)

            if jitter:
                return float(
                    wait_exponential_jitter(
                        initial=backoff_factor, max=max_wait, jitter=backoff_factor
                    )(retry_state)
                )
            exponent = max(retry_state.attempt_number - 1, 0)
            return float(min(backoff_factor * (2**exponent), max_wait))

        def should_retry(retry_state: RetryCallState) -> bool:
            if not retry_state.outcome or not retry_state.outcome.failed:
                return False

            exception = retry_state.outcome.exception()
            if not isinstance(exception, retry_on):
                self._retry_logger.debug(f"Not retrying {name}: {exception}")
                return False

            self._retry_logger.warning(
                f"Attempt {retry_state.attempt_number}/{attempts} of {name} "
                f"failed: {exception}. Retrying..."
            )
            return True

        return retry(
            stop=stop_after_attempt(max(attempts, 1)),
            wait=wait_strategy,
            retry=should_retry,
            reraise=True,
        )(func)
