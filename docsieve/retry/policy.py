from dataclasses import dataclass

from docsieve.config.settings import Settings


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with a per-attempt deadline.

    ``attempt_timeout_seconds=None`` runs attempts without a deadline, for
    stages whose inner steps carry their own.
    """

    max_attempts: int = 3
    backoff_seconds: tuple[float, ...] = (1.0, 2.0, 4.0)
    attempt_timeout_seconds: float | None = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.attempt_timeout_seconds is not None and self.attempt_timeout_seconds <= 0:
            raise ValueError("attempt_timeout_seconds must be positive")

    def delay_before(self, attempt_number: int) -> float:
        """Seconds to wait before ``attempt_number`` (1-based). Zero for the first."""
        if attempt_number <= 1 or not self.backoff_seconds:
            return 0.0
        index = min(attempt_number - 2, len(self.backoff_seconds) - 1)
        return self.backoff_seconds[index]

    @classmethod
    def for_stages(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            backoff_seconds=tuple(settings.retry_backoff_seconds),
            attempt_timeout_seconds=settings.attempt_timeout_seconds,
        )

    @classmethod
    def for_pages(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.page_retry_max_attempts,
            backoff_seconds=tuple(settings.retry_backoff_seconds),
            attempt_timeout_seconds=settings.page_attempt_timeout_seconds,
        )
