from docsieve.retry.controller import (
    PermanentFailure,
    RetryController,
    RetryResult,
    StageExhausted,
    StageSucceeded,
)
from docsieve.retry.policy import RetryPolicy

__all__ = [
    "PermanentFailure",
    "RetryController",
    "RetryPolicy",
    "RetryResult",
    "StageExhausted",
    "StageSucceeded",
]
