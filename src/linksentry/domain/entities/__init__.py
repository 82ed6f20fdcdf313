from .link_check import (
    RETRYABLE_STATUSES,
    CompletionEvent,
    ErrorEvent,
    FieldError,
    LinkCheckEvent,
    LinkCheckRequest,
    LinkCheckResult,
    LinkStatus,
    RetryPolicy,
    RunOutcome,
    SchedulerLimits,
)

__all__ = [
    "RETRYABLE_STATUSES",
    "CompletionEvent",
    "ErrorEvent",
    "FieldError",
    "LinkCheckEvent",
    "LinkCheckRequest",
    "LinkCheckResult",
    "LinkStatus",
    "RetryPolicy",
    "RunOutcome",
    "SchedulerLimits",
]
