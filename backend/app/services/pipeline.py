"""
Ordered step runner for operations that touch more than one store.

Each step is an async callable taking the operation context and returning
CONTINUE or halt(error). Before the database commit, a halt or an
unexpected fault runs the registered compensations in reverse order. Once a
step calls ``ctx.mark_committed()`` compensations are dropped and the
post-commit actions run instead, so nothing the committed row references is
ever undone and nothing it stopped referencing is removed too early.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
from app.core.errors import AppError, InternalError

logger = logging.getLogger(__name__)

Action = Callable[[], Any]


@dataclass(frozen=True)
class StepOutcome:
    error: Optional[AppError] = None

    @property
    def halted(self) -> bool:
        return self.error is not None


CONTINUE = StepOutcome()


def halt(error: AppError) -> StepOutcome:
    return StepOutcome(error=error)


@dataclass
class OperationContext:
    """State threaded through the steps of one operation"""
    operation: str
    data: dict[str, Any] = field(default_factory=dict)
    committed: bool = False
    _compensations: list[tuple[str, Action]] = field(default_factory=list)
    _after_commit: list[tuple[str, Action]] = field(default_factory=list)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def compensate_with(self, label: str, action: Action) -> None:
        """Undo action to run if the operation fails before commit"""
        self._compensations.append((label, action))

    def after_commit(self, label: str, action: Action) -> None:
        """Action to run once the database change is committed"""
        self._after_commit.append((label, action))

    def mark_committed(self) -> None:
        self.committed = True
        self._compensations.clear()


Step = Callable[[OperationContext], Awaitable[StepOutcome]]


class Pipeline:
    def __init__(self, name: str, steps: list[tuple[str, Step]]):
        self.name = name
        self.steps = steps

    async def run(self, ctx: OperationContext) -> OperationContext:
        for label, step in self.steps:
            try:
                outcome = await step(ctx)
            except AppError as e:
                logger.info(f"{self.name}: step '{label}' failed: {e.message}")
                self._finish_failed(ctx)
                raise
            except Exception as e:
                logger.exception(f"{self.name}: unexpected error in step '{label}'")
                self._finish_failed(ctx)
                raise InternalError(detail=str(e)) from e

            if outcome.halted:
                logger.info(f"{self.name}: halted at step '{label}': {outcome.error.message}")
                self._finish_failed(ctx)
                raise outcome.error

        self._run_actions(ctx._after_commit, "post-commit action")
        return ctx

    def _finish_failed(self, ctx: OperationContext) -> None:
        if ctx.committed:
            # The change is durable; finish its cleanup instead of undoing anything
            self._run_actions(ctx._after_commit, "post-commit action")
        else:
            self._run_actions(list(reversed(ctx._compensations)), "compensation")

    def _run_actions(self, actions: list[tuple[str, Action]], kind: str) -> None:
        for label, action in actions:
            try:
                action()
                logger.info(f"{self.name}: ran {kind} '{label}'")
            except Exception as e:
                # Never mask the primary outcome with a cleanup failure
                logger.warning(f"{self.name}: {kind} '{label}' failed: {str(e)}")
