"""Execution Domain Services.

StepDispatcher runs one step through match, invoke, heal and retry.
ScenarioRunner runs a scenario's steps in declared order on top of it.
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Tuple, Union,
)

from bddmcp.domains.healing import (
    FailureContext, HealingEngine, HealingHistory, HealingOutcome,
)
from bddmcp.domains.module_detection import (
    ModuleRequirement, ScenarioDescriptor, is_ui_step,
)
from bddmcp.domains.shared.errors import (
    AmbiguousStepError, HandlerError, StepTimeoutError, UndefinedStepError,
)
from bddmcp.domains.shared.kernel import Milliseconds
from bddmcp.domains.step_registry import StepMatch, StepRegistry, split_keyword

from .entities import StepContext, StepExecution, StepPhase
from .events import ScenarioCompleted, StepCompleted
from .value_objects import ErrorKind, ScenarioResult, StepResult, StepStatus

if TYPE_CHECKING:
    from bddmcp.models.config_models import EngineConfig

logger = logging.getLogger(__name__)

DEFAULT_STEP_TIMEOUT_MS = 30000

InvokeError = Union[StepTimeoutError, HandlerError]


# ── StepDispatcher ────────────────────────────────────────────────────

@dataclass
class StepDispatcher:
    """Resolves, invokes, times out and heals a single step.

    ``execute`` never raises for step-time problems: undefined and
    ambiguous steps, handler exceptions and timeouts all come back as a
    StepResult. Only cancellation from outside propagates.

    Timeout precedence: the definition's ``timeout_ms``, then the
    ``timeout_ms`` argument, then ``default_timeout_ms``.

    Healing runs only when a healing engine is configured,
    ``healing_enabled`` is set, the handler raised (not timed out) and
    the step text is UI-classified. A successful heal is followed by
    exactly one retry with ``context.healed_locator`` set.

    Sync handlers run on ``executor`` (the loop default when unset). A
    timed-out sync handler keeps its thread until it returns; such
    threads are counted in ``abandoned_threads``. ``shutdown`` releases
    the executor.
    """
    registry: StepRegistry
    healing_engine: Optional[HealingEngine] = None
    healing_history: Optional[HealingHistory] = None
    healing_enabled: bool = True
    default_timeout_ms: int = DEFAULT_STEP_TIMEOUT_MS
    ui_classifier: Callable[[str], bool] = is_ui_step
    event_publisher: Optional[Callable[[Any], None]] = None
    executor: Optional[Executor] = None
    abandoned_threads: int = field(default=0, init=False)

    @classmethod
    def from_config(
        cls,
        registry: StepRegistry,
        config: "EngineConfig",
        healing_engine: Optional[HealingEngine] = None,
        healing_history: Optional[HealingHistory] = None,
        **kwargs: Any,
    ) -> "StepDispatcher":
        return cls(
            registry=registry,
            healing_engine=healing_engine,
            healing_history=healing_history,
            healing_enabled=config.HEALING_ENABLED,
            default_timeout_ms=config.DEFAULT_STEP_TIMEOUT,
            **kwargs,
        )

    def effective_timeout(self, match: StepMatch, timeout_ms: Optional[int]) -> int:
        if match.definition.timeout_ms is not None:
            return match.definition.timeout_ms
        if timeout_ms is not None and timeout_ms > 0:
            return timeout_ms
        return self.default_timeout_ms

    async def execute(
        self,
        step_text: str,
        bound_args: Sequence[Any] = (),
        context: Optional[StepContext] = None,
        timeout_ms: Optional[int] = None,
    ) -> StepResult:
        """Dispatch one step.

        Args:
            step_text: Step text without its Gherkin keyword.
            bound_args: Extra arguments (doc string, data table) passed
                after the typed placeholder values.
            context: Injected handler context; a fresh one if omitted.
            timeout_ms: Call-level timeout.
        """
        context = context if context is not None else StepContext()
        execution = StepExecution(step_text=step_text)
        start = time.monotonic()

        def finish(status: StepStatus, **kwargs: Any) -> StepResult:
            result = StepResult(
                step_text=step_text,
                status=status,
                duration_ms=Milliseconds.between(start, time.monotonic()).value,
                **kwargs,
            )
            self._publish(StepCompleted(
                step_text=step_text,
                status=status.value,
                duration_ms=result.duration_ms,
                error_kind=result.error_kind.value if result.error_kind else None,
                healed=result.healed,
            ))
            logger.debug("Step %r -> %s in %dms", step_text, status.value, result.duration_ms)
            return result

        # 1. Match
        execution.advance(StepPhase.MATCHING)
        try:
            match = self.registry.match(step_text)
        except UndefinedStepError as e:
            execution.advance(StepPhase.FAILED)
            return finish(StepStatus.UNDEFINED, error_kind=ErrorKind.UNDEFINED,
                          error_message=str(e))
        except AmbiguousStepError as e:
            execution.advance(StepPhase.FAILED)
            return finish(StepStatus.FAILED, error_kind=ErrorKind.AMBIGUOUS,
                          error_message=str(e))

        pattern = match.definition.pattern.template
        timeout = self.effective_timeout(match, timeout_ms)

        # 2. Invoke
        execution.advance(StepPhase.INVOKING)
        error = await self._invoke(match, bound_args, context, timeout)
        if error is None:
            execution.advance(StepPhase.PASSED)
            return finish(StepStatus.PASSED, pattern=pattern, timeout_ms=timeout)

        execution.advance(StepPhase.FAILED)
        if isinstance(error, StepTimeoutError):
            return finish(StepStatus.TIMED_OUT, error_kind=ErrorKind.TIMEOUT,
                          error_message=str(error), pattern=pattern, timeout_ms=timeout)
        if not self._should_heal(step_text):
            return finish(StepStatus.FAILED, error_kind=ErrorKind.HANDLER,
                          error_message=str(error), pattern=pattern, timeout_ms=timeout)

        # 3. Heal
        execution.advance(StepPhase.HEALING)
        outcome = await self._heal(step_text, error, context)
        if not outcome.success:
            execution.advance(StepPhase.FAILED)
            return finish(StepStatus.FAILED, error_kind=ErrorKind.HANDLER,
                          error_message=str(error), healing_attempts=outcome.attempts,
                          pattern=pattern, timeout_ms=timeout)

        # 4. Retry once with the healed locator
        execution.advance(StepPhase.INVOKING)
        context.healed_locator = outcome.healed_locator
        try:
            retry_error = await self._invoke(match, bound_args, context, timeout)
        finally:
            context.healed_locator = None

        if retry_error is None:
            execution.advance(StepPhase.PASSED)
            self._remember_heal(error, outcome)
            return finish(StepStatus.PASSED, healing_attempts=outcome.attempts,
                          healed=True, healed_locator=outcome.healed_locator,
                          pattern=pattern, timeout_ms=timeout)

        execution.advance(StepPhase.FAILED)
        timed_out = isinstance(retry_error, StepTimeoutError)
        return finish(
            StepStatus.TIMED_OUT if timed_out else StepStatus.FAILED,
            error_kind=ErrorKind.TIMEOUT if timed_out else ErrorKind.HANDLER,
            error_message=f"{retry_error} (after healing; original error: {error})",
            healing_attempts=outcome.attempts,
            healed_locator=outcome.healed_locator,
            pattern=pattern,
            timeout_ms=timeout,
        )

    # ============================================================
    # Internals
    # ============================================================

    async def _invoke(
        self,
        match: StepMatch,
        bound_args: Sequence[Any],
        context: StepContext,
        timeout_ms: int,
    ) -> Optional[InvokeError]:
        handler = match.definition.handler
        args = (context, *match.values, *bound_args)
        try:
            await asyncio.wait_for(
                self._call(handler, args, match.step_text),
                timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            logger.warning("Step %r timed out after %dms", match.step_text, timeout_ms)
            if not inspect.iscoroutinefunction(handler):
                self.abandoned_threads += 1
                logger.warning(
                    "Sync handler for %r is still running in its thread (%d abandoned)",
                    match.step_text, self.abandoned_threads,
                )
            return StepTimeoutError(match.step_text, timeout_ms)
        except HandlerError as e:
            return e
        return None

    async def _call(self, handler: Callable[..., Any], args: Tuple[Any, ...], step_text: str) -> Any:
        # Wrapping here keeps a TimeoutError raised by the handler itself
        # distinct from the dispatcher's own timeout.
        try:
            if inspect.iscoroutinefunction(handler):
                return await handler(*args)
            if self.executor is None:
                result = await asyncio.to_thread(handler, *args)
            else:
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(
                    self.executor, functools.partial(handler, *args),
                )
            if inspect.isawaitable(result):
                result = await result
            return result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise HandlerError(step_text, e) from e

    def shutdown(self) -> None:
        """Release the handler executor without waiting for running threads."""
        if self.executor is None:
            return
        if self.abandoned_threads:
            logger.warning("Shutting down handler executor with %d abandoned thread(s)",
                           self.abandoned_threads)
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _should_heal(self, step_text: str) -> bool:
        if self.healing_engine is None or not self.healing_enabled:
            return False
        return self.ui_classifier(step_text)

    async def _heal(
        self, step_text: str, error: HandlerError, context: StepContext,
    ) -> HealingOutcome:
        failure = FailureContext.from_error(
            step_text, error.cause, driver=context.driver, history=self.healing_history,
        )
        outcome = await self.healing_engine.heal(failure)
        if self.healing_history is not None:
            self.healing_history.record_outcome(outcome)
        return outcome

    def _remember_heal(self, error: HandlerError, outcome: HealingOutcome) -> None:
        original = getattr(error.cause, "locator", None)
        if self.healing_history is None or not original or not outcome.healed_locator:
            return
        if outcome.healed_locator == original:
            return
        winning = outcome.attempts[-1]
        self.healing_history.record_heal(
            original, outcome.healed_locator, winning.strategy_name, winning.confidence,
        )

    def _publish(self, event: Any) -> None:
        if self.event_publisher is not None:
            self.event_publisher(event)


# ── ScenarioRunner ────────────────────────────────────────────────────

@dataclass
class ScenarioRunner:
    """Runs a scenario's steps strictly in declared order.

    The first step that does not pass ends the scenario; later steps
    are reported as skipped.
    """
    dispatcher: StepDispatcher
    event_publisher: Optional[Callable[[Any], None]] = None

    async def run(
        self,
        scenario: ScenarioDescriptor,
        requirement: Optional[ModuleRequirement] = None,
        context: Optional[StepContext] = None,
        worker_id: Optional[str] = None,
    ) -> ScenarioResult:
        context = context if context is not None else StepContext(
            worker_id=worker_id, scenario=scenario.name,
        )
        start = time.monotonic()
        results: List[StepResult] = []
        skipped: List[str] = []

        for index, line in enumerate(scenario.step_texts):
            _, text = split_keyword(line)
            result = await self.dispatcher.execute(text, context=context)
            results.append(result)
            if not result.passed:
                skipped = [split_keyword(s)[1] for s in scenario.step_texts[index + 1:]]
                break

        scenario_result = ScenarioResult(
            name=scenario.name,
            requirement=requirement or ModuleRequirement.none(),
            steps=tuple(results),
            skipped=tuple(skipped),
            duration_ms=Milliseconds.between(start, time.monotonic()).value,
            worker_id=worker_id,
        )
        if self.event_publisher is not None:
            self.event_publisher(ScenarioCompleted(
                name=scenario.name,
                passed=scenario_result.passed,
                steps=len(results),
                worker_id=worker_id,
            ))
        return scenario_result
