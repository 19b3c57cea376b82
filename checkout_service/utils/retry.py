"""Retry logic with exponential backoff and jitter for transient failures."""

import asyncio
import functools
import inspect
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Error codes reported by HTTP clients when a request times out
TIMEOUT_CODES = frozenset({"ECONNABORTED", "ETIMEDOUT"})


def _always_retry(error: Exception) -> bool:
    return True


@dataclass(frozen=True)
class RetryOptions:
    """Configuration for retry behavior.

    Delays are expressed in milliseconds.

    Attributes:
        max_retries: Retries after the initial attempt (default: 3)
        initial_delay: Delay before the first retry (default: 1000)
        max_delay: Upper bound for any single delay, jitter included (default: 10000)
        should_retry: Predicate deciding whether an error is worth retrying
            (default: retry everything)
        max_jitter: Upper bound (exclusive) of the random term added to each
            delay (default: 1000)
    """
    max_retries: int = 3
    initial_delay: float = 1000.0
    max_delay: float = 10000.0
    should_retry: Callable[[Exception], bool] = _always_retry
    max_jitter: float = 1000.0

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ValueError(f"max_retries must be an integer, got {self.max_retries!r}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        for name in ("initial_delay", "max_delay", "max_jitter"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not callable(self.should_retry):
            raise ValueError("should_retry must be callable")

    @property
    def max_attempts(self) -> int:
        """Total number of attempts, the initial one included."""
        return self.max_retries + 1

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt using exponential backoff.

        Jitter is added before the cap, so the result never exceeds
        ``max_delay``.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in milliseconds
        """
        jitter = random.random() * self.max_jitter
        delay = self.initial_delay * (2 ** attempt) + jitter
        return min(delay, self.max_delay)


class RetryableOperation:
    """Class-based retry wrapper.

    Runs one logical operation at a time; attempts never overlap.

    Example:
        operation = RetryableOperation(create_intent, RetryOptions(max_retries=5))
        result = await operation.execute(amount=1000)
    """

    def __init__(
        self,
        func: Callable[..., Awaitable[T] | T],
        options: RetryOptions | None = None,
        name: str | None = None,
        on_retry: Callable[[Exception, int, float], None] | None = None,
    ):
        """Initialize retryable operation.

        Args:
            func: Function to wrap; coroutine functions and callables
                returning an awaitable are awaited
            options: Retry configuration
            name: Operation name for logging
            on_retry: Optional callback called before each retry with
                (exception, attempt, delay_ms)
        """
        self._func = func
        self._options = options or RetryOptions()
        self._name = name or getattr(func, "__name__", repr(func))
        self._on_retry = on_retry
        self._attempt_count = 0

    async def execute(self, *args, **kwargs) -> T:
        """Execute the operation with retries.

        Args:
            *args: Positional arguments for the wrapped function
            **kwargs: Keyword arguments for the wrapped function

        Returns:
            Result of the wrapped function

        Raises:
            Exception: The last error raised by the wrapped function, unchanged
        """
        options = self._options
        self._attempt_count = 0

        for attempt in range(options.max_attempts):
            self._attempt_count = attempt + 1

            try:
                result = self._func(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as e:
                if not options.should_retry(e):
                    raise

                if attempt == options.max_retries:
                    if options.max_retries:
                        logger.error(
                            f"Max retries ({options.max_retries}) exceeded "
                            f"for {self._name}: {e!r}"
                        )
                    raise

                delay = options.calculate_delay(attempt)

                logger.warning(
                    f"Attempt {attempt + 1}/{options.max_attempts} for {self._name} "
                    f"failed: {e!r}. Retrying in {delay:.0f}ms..."
                )

                if self._on_retry:
                    self._on_retry(e, attempt, delay)

                await asyncio.sleep(delay / 1000)

        raise RuntimeError("Retry loop exited without a result")

    @property
    def attempt_count(self) -> int:
        """Get the number of attempts made in last execution."""
        return self._attempt_count


async def retry_operation(
    func: Callable[..., Awaitable[T] | T],
    *args,
    options: RetryOptions | None = None,
    **kwargs
) -> T:
    """Execute a function with retry logic (functional API).

    Args:
        func: Function to execute
        *args: Positional arguments
        options: Retry configuration
        **kwargs: Keyword arguments

    Returns:
        Result of the function

    Example:
        intent = await retry_operation(
            client.create_payment_intent,
            1000,
            "usd",
            options=RetryOptions(max_retries=2, should_retry=is_transient),
        )
    """
    operation = RetryableOperation(func, options)
    return await operation.execute(*args, **kwargs)


def with_retry(
    options: RetryOptions | None = None,
    on_retry: Callable[[Exception, int, float], None] | None = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator for adding retry logic with exponential backoff.

    The decorated function is always exposed as a coroutine function.

    Args:
        options: Retry configuration (uses defaults if not provided)
        on_retry: Optional callback called on each retry with (exception, attempt, delay_ms)

    Returns:
        Decorated function

    Example:
        @with_retry()
        async def fetch_order():
            return await api.get_order()

        @with_retry(RetryOptions(max_retries=5, initial_delay=2000))
        async def critical_operation():
            return await api.critical_call()
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            operation = RetryableOperation(func, options, on_retry=on_retry)
            return await operation.execute(*args, **kwargs)

        return wrapper

    return decorator


# ---------- (data, error) queries ----------

class QueryResult(NamedTuple):
    """Outcome of a query that reports failures instead of raising."""
    data: Any
    error: Any = None


class RetryVerdict(Enum):
    """Classification of a query error."""
    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"


def _read_field(error: Any, name: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def classify_query_error(error: Any) -> RetryVerdict:
    """Decide whether a query error is transient.

    Network timeouts and server-side (5xx) failures are retryable. The code
    is read from a mapping key or an attribute, so dicts and exception
    objects from any client library are classified the same way. ``None``
    (no error) is never retryable.

    Args:
        error: Error reported by the query, or None

    Returns:
        RetryVerdict.RETRYABLE or RetryVerdict.NON_RETRYABLE
    """
    if error is None:
        return RetryVerdict.NON_RETRYABLE

    if isinstance(error, TimeoutError):
        return RetryVerdict.RETRYABLE

    code = _read_field(error, "code")
    if isinstance(code, str) and code.upper() in TIMEOUT_CODES:
        return RetryVerdict.RETRYABLE

    for value in (code, _read_field(error, "status"), _read_field(error, "status_code")):
        status = _as_status(value)
        if status is not None and 500 <= status <= 599:
            return RetryVerdict.RETRYABLE

    return RetryVerdict.NON_RETRYABLE


class _RetryableQueryError(Exception):
    """Carries a failed query result through the retry loop."""

    def __init__(self, result: QueryResult) -> None:
        super().__init__(result.error)
        self.result = result


def _as_query_result(value: Any) -> QueryResult:
    if isinstance(value, QueryResult):
        return value
    if isinstance(value, Mapping):
        return QueryResult(value.get("data"), value.get("error"))
    if isinstance(value, tuple) and len(value) == 2:
        return QueryResult(*value)
    raise TypeError(
        f"Query must return a (data, error) pair, got {type(value).__name__}"
    )


def _is_retryable_query_error(error: Exception) -> bool:
    return isinstance(error, _RetryableQueryError)


async def retry_query(
    query: Callable[[], Awaitable[Any]],
    *,
    max_retries: int = 3,
    initial_delay: float = 1000.0,
    max_delay: float = 5000.0,
    max_jitter: float = 1000.0,
) -> QueryResult:
    """Run a (data, error) query, retrying transient errors.

    Only errors classified as RETRYABLE trigger another attempt. Successful
    results and non-retryable errors are returned as-is. When the retry
    budget runs out, the last failed result is returned rather than raised.
    Exceptions raised by the query itself propagate without retrying.

    Args:
        query: Async callable returning a QueryResult, a 2-tuple or a
            mapping with ``data`` and ``error`` keys
        max_retries: Retries after the initial attempt
        initial_delay: First backoff delay in milliseconds
        max_delay: Backoff cap in milliseconds
        max_jitter: Upper bound of the random delay term in milliseconds

    Returns:
        QueryResult of the last attempt

    Example:
        result = await retry_query(lambda: repo.fetch_report(report_id))
        if result.error is not None:
            ...
    """
    options = RetryOptions(
        max_retries=max_retries,
        initial_delay=initial_delay,
        max_delay=max_delay,
        should_retry=_is_retryable_query_error,
        max_jitter=max_jitter,
    )

    async def attempt() -> QueryResult:
        result = _as_query_result(await query())
        if classify_query_error(result.error) is RetryVerdict.RETRYABLE:
            raise _RetryableQueryError(result)
        return result

    operation = RetryableOperation(
        attempt, options, name=getattr(query, "__name__", "query")
    )
    try:
        return await operation.execute()
    except _RetryableQueryError as e:
        return e.result
