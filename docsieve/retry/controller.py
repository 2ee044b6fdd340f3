import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from docsieve.logging.logger import Log
from docsieve.pipeline.exceptions import PipelineCancelledError
from docsieve.pipeline.models import AttemptOutcome, ProcessingAttempt, Stage
from docsieve.retry.errors import FailureKind, classify_error, error_code
from docsieve.retry.policy import RetryPolicy

T = TypeVar("T")

StageFn = Callable[[], Awaitable[T]]
AttemptHook = Callable[[ProcessingAttempt], Awaitable[None]]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class StageSucceeded(Generic[T]):
    stage: Stage
    value: T
    attempts: tuple[ProcessingAttempt, ...]


@dataclass(frozen=True)
class StageExhausted:
    """Every allowed attempt failed transiently. Returned, never raised."""

    stage: Stage
    attempts: tuple[ProcessingAttempt, ...]
    last_error: str


@dataclass(frozen=True)
class PermanentFailure:
    stage: Stage
    attempts: tuple[ProcessingAttempt, ...]
    error: str
    error_code: str


RetryResult = StageSucceeded[Any] | StageExhausted | PermanentFailure


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetryController:
    """Runs one stage call with bounded retries and a per-attempt deadline."""

    def __init__(
        self,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sleep = sleep
        self._clock = clock
        self._now = now

    async def execute(
        self,
        stage_fn: StageFn[T],
        policy: RetryPolicy,
        *,
        stage: Stage,
        on_attempt: AttemptHook | None = None,
        label: str = "",
    ) -> RetryResult:
        """Call ``stage_fn`` until it succeeds, fails permanently or runs out of attempts.

        Each attempt is handed to ``on_attempt`` before the next one starts
        and before this method returns.
        """
        attempts: list[ProcessingAttempt] = []
        last_error = ""
        name = label or stage.value

        for attempt_number in range(1, policy.max_attempts + 1):
            delay = policy.delay_before(attempt_number)
            if delay > 0:
                await self._sleep(delay)

            started_at = self._now()
            t0 = self._clock()
            try:
                value = await asyncio.wait_for(
                    stage_fn(), timeout=policy.attempt_timeout_seconds
                )
            except (asyncio.CancelledError, PipelineCancelledError):
                raise
            except Exception as exc:
                kind = classify_error(exc)
                detail = str(exc) or repr(exc)
                code = error_code(exc)
                attempt = ProcessingAttempt(
                    stage=stage,
                    attempt_number=attempt_number,
                    started_at=started_at,
                    outcome=(
                        AttemptOutcome.TRANSIENT_FAILURE
                        if kind is FailureKind.TRANSIENT
                        else AttemptOutcome.PERMANENT_FAILURE
                    ),
                    error_detail=detail,
                    error_code=code,
                    duration_ms=(self._clock() - t0) * 1000,
                )
                attempts.append(attempt)
                if on_attempt is not None:
                    await on_attempt(attempt)

                if kind is FailureKind.PERMANENT:
                    Log.error(f"{name} attempt {attempt_number} failed permanently: {detail}")
                    return PermanentFailure(
                        stage=stage,
                        attempts=tuple(attempts),
                        error=detail,
                        error_code=code,
                    )
                Log.warning(
                    f"{name} attempt {attempt_number}/{policy.max_attempts} "
                    f"failed transiently ({code}): {detail}"
                )
                last_error = detail
                continue

            attempt = ProcessingAttempt(
                stage=stage,
                attempt_number=attempt_number,
                started_at=started_at,
                outcome=AttemptOutcome.SUCCESS,
                duration_ms=(self._clock() - t0) * 1000,
            )
            attempts.append(attempt)
            if on_attempt is not None:
                await on_attempt(attempt)
            Log.debug(f"{name} attempt {attempt_number} succeeded")
            return StageSucceeded(stage=stage, value=value, attempts=tuple(attempts))

        Log.warning(f"{name} exhausted {policy.max_attempts} attempts: {last_error}")
        return StageExhausted(stage=stage, attempts=tuple(attempts), last_error=last_error)
