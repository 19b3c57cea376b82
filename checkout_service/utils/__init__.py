"""Utility modules."""

from .retry import (
    QueryResult,
    RetryableOperation,
    RetryOptions,
    RetryVerdict,
    classify_query_error,
    retry_operation,
    retry_query,
    with_retry,
)

__all__ = [
    "with_retry",
    "RetryOptions",
    "RetryableOperation",
    "retry_operation",
    "QueryResult",
    "RetryVerdict",
    "classify_query_error",
    "retry_query",
]
