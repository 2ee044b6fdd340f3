"""Cascade state machine.

The cascade is a pure function of its state and the last stage result, so
the fallback rules can be tested without any adapter:

* success ends the cascade as ``completed`` with that stage as the winner;
* ``StageExhausted`` moves to the next stage in the fixed order, or ends the
  cascade as ``failed`` when the exhausted stage was the last one;
* ``PermanentFailure`` ends the cascade as ``failed`` without moving on,
  since a different extractor cannot fix invalid input.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from docsieve.pipeline.models import Stage
from docsieve.retry.controller import (
    PermanentFailure,
    RetryResult,
    StageExhausted,
    StageSucceeded,
)


class CascadeStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CascadeState:
    stages: tuple[Stage, ...]
    position: int
    status: CascadeStatus = CascadeStatus.RUNNING
    winning_stage: Stage | None = None
    payload: Any = None
    exhausted: tuple[Stage, ...] = ()
    permanent: bool = False
    error: str | None = None

    @property
    def current_stage(self) -> Stage:
        return self.stages[self.position]

    @property
    def is_terminal(self) -> bool:
        return self.status is not CascadeStatus.RUNNING


def initial_state(stages: tuple[Stage, ...], entry_stage: Stage | None = None) -> CascadeState:
    """Start at ``entry_stage`` when it is part of ``stages``, else at the first stage."""
    if not stages:
        raise ValueError("A cascade needs at least one stage")
    if len(set(stages)) != len(stages):
        raise ValueError(f"Duplicate stages in cascade: {[s.value for s in stages]}")
    position = stages.index(entry_stage) if entry_stage in stages else 0
    return CascadeState(stages=stages, position=position)


def transition(state: CascadeState, result: RetryResult) -> CascadeState:
    """Return the state that follows ``result`` for the current stage."""
    if state.is_terminal:
        raise ValueError(f"Cascade already {state.status.value}")
    if result.stage is not state.current_stage:
        raise ValueError(
            f"Result for {result.stage.value} does not match current stage "
            f"{state.current_stage.value}"
        )

    if isinstance(result, StageSucceeded):
        return replace(
            state,
            status=CascadeStatus.COMPLETED,
            winning_stage=result.stage,
            payload=result.value,
        )

    if isinstance(result, PermanentFailure):
        return replace(
            state,
            status=CascadeStatus.FAILED,
            permanent=True,
            error=f"{result.stage.value}: {result.error}",
        )

    if isinstance(result, StageExhausted):
        exhausted = (*state.exhausted, result.stage)
        error = f"{result.stage.value}: {result.last_error}"
        if state.position + 1 >= len(state.stages):
            return replace(
                state,
                status=CascadeStatus.FAILED,
                exhausted=exhausted,
                error=error,
            )
        return replace(state, position=state.position + 1, exhausted=exhausted, error=error)

    raise TypeError(f"Unknown stage result: {result!r}")
