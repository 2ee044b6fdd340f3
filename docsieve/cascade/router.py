from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from docsieve.cascade.state import CascadeState, initial_state, transition
from docsieve.logging.logger import Log
from docsieve.pipeline.context import RunContext
from docsieve.pipeline.models import Stage
from docsieve.retry.controller import RetryController
from docsieve.retry.policy import RetryPolicy

StageCall = Callable[[], Awaitable[Any]]


class CascadeRouter:
    """Drives a document through the ordered stages until one succeeds.

    A later stage only runs after the earlier one returned ``StageExhausted``.
    """

    def __init__(self, retry_controller: RetryController) -> None:
        self._retry = retry_controller

    async def run(
        self,
        context: RunContext,
        stage_calls: Mapping[Stage, StageCall],
        *,
        entry_stage: Stage | None = None,
        policies: Mapping[Stage, RetryPolicy] | None = None,
    ) -> CascadeState:
        missing = [s.value for s in context.stages if s not in stage_calls]
        if missing:
            raise ValueError(f"No stage call registered for: {missing}")

        state = initial_state(context.stages, entry_stage)
        document_id = context.document.id
        Log.info(
            f"Cascade for document {document_id} starts at {state.current_stage.value} "
            f"(stages: {[s.value for s in state.stages]})"
        )

        while not state.is_terminal:
            stage = state.current_stage
            context.cancellation.raise_if_cancelled(f"stage {stage.value}")
            policy = (policies or {}).get(stage, context.stage_policy)
            result = await self._retry.execute(
                stage_calls[stage],
                policy,
                stage=stage,
                on_attempt=context.record_attempt,
                label=f"document {document_id} {stage.value}",
            )
            state = transition(state, result)
            if not state.is_terminal:
                Log.warning(
                    f"Document {document_id}: {stage.value} exhausted, "
                    f"cascading to {state.current_stage.value}"
                )

        Log.info(
            f"Cascade for document {document_id} ended {state.status.value}"
            + (f" with {state.winning_stage.value}" if state.winning_stage else "")
        )
        return state
