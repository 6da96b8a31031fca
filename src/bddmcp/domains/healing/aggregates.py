"""Healing Domain Aggregate Root.

The HealingEngine owns the ordered strategy chain for one worker and
runs it against a failure context.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from bddmcp.domains.shared.kernel import Milliseconds

from .events import HealingAttempted, HealingExhausted, HealingSucceeded
from .strategies import default_strategies
from .value_objects import (
    FailureContext, HealingAttempt, HealingOutcome, HealingStrategy, StrategyResult,
)

if TYPE_CHECKING:
    from bddmcp.models.config_models import EngineConfig

logger = logging.getLogger(__name__)


class _StrategyFailure(Exception):
    """Carries an exception raised inside a strategy past ``wait_for``."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause


@dataclass
class HealingEngine:
    """Aggregate root: ordered, budgeted chain of healing strategies.

    Invariants:
        - Strategies run in descending priority; ties keep registration
          order.
        - Strategy names are unique.
        - The chain is immutable once sealed.
        - At most ``max_attempts`` strategies are attempted per heal.
        - A success reported with confidence below
          ``confidence_threshold`` counts as a failed attempt.
        - A strategy that raises or overruns ``attempt_timeout_ms`` is
          recorded as a failed attempt; the chain continues.
        - When ``time_budget_ms`` runs out the running attempt is
          cancelled and the heal ends as exhausted.

    Concurrency:
        One engine per worker. Attempt records are local to each
        ``heal`` call.
    """
    _strategies: List[HealingStrategy] = field(default_factory=list)
    max_attempts: int = 3
    confidence_threshold: float = 0.5
    attempt_timeout_ms: Optional[int] = 10000
    time_budget_ms: Optional[int] = 30000
    _sealed: bool = False
    event_publisher: Optional[Callable[[Any], None]] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}"
            )
        self._strategies = self._ordered(self._strategies)

    @classmethod
    def with_defaults(cls, **kwargs: Any) -> HealingEngine:
        """Engine with the built-in catalog, sealed."""
        engine = cls(**kwargs)
        for strategy in default_strategies():
            engine.register_strategy(strategy)
        engine.seal()
        return engine

    @classmethod
    def from_config(cls, config: "EngineConfig", **kwargs: Any) -> HealingEngine:
        return cls.with_defaults(
            max_attempts=config.MAX_HEALING_ATTEMPTS,
            confidence_threshold=config.CONFIDENCE_THRESHOLD,
            attempt_timeout_ms=config.HEALING_ATTEMPT_TIMEOUT or None,
            time_budget_ms=config.HEALING_TIME_BUDGET or None,
            **kwargs,
        )

    def register_strategy(self, strategy: HealingStrategy) -> None:
        """Add a strategy to the chain.

        Raises:
            RuntimeError: If the engine is sealed.
            ValueError: If a strategy with the same name exists.
        """
        if self._sealed:
            raise RuntimeError("Healing engine is sealed; strategies are immutable")
        if any(s.name == strategy.name for s in self._strategies):
            raise ValueError(f"Duplicate healing strategy: {strategy.name}")
        self._strategies = self._ordered(self._strategies + [strategy])

    def seal(self) -> None:
        self._sealed = True

    @property
    def strategies(self) -> List[HealingStrategy]:
        return list(self._strategies)

    @property
    def strategy_count(self) -> int:
        return len(self._strategies)

    def clear(self) -> None:
        """Drop every strategy (worker shutdown)."""
        self._strategies = []
        self._sealed = False

    async def heal(self, context: FailureContext) -> HealingOutcome:
        """Run the strategy chain.

        Never raises for strategy failures. ``asyncio.CancelledError``
        coming from outside the engine propagates.
        """
        attempts: List[HealingAttempt] = []
        exhausted = False
        deadline = (
            time.monotonic() + self.time_budget_ms / 1000.0
            if self.time_budget_ms else None
        )

        for strategy in self._strategies:
            if len(attempts) >= self.max_attempts:
                exhausted = True
                logger.debug("Healing attempt budget (%d) exhausted for %r",
                             self.max_attempts, context.step_text)
                break
            if deadline is not None and time.monotonic() >= deadline:
                exhausted = True
                break
            if not self._applicable(strategy, context):
                continue

            attempt, budget_hit = await self._run_attempt(strategy, context, deadline)
            attempts.append(attempt)
            self._publish(HealingAttempted(
                step_text=context.step_text,
                strategy=attempt.strategy_name,
                success=attempt.success,
                confidence=attempt.confidence,
                duration_ms=attempt.duration_ms,
            ))

            if attempt.success:
                logger.info(
                    "Healed %r with %s (confidence %.2f): %s -> %s",
                    context.step_text, strategy.name, attempt.confidence,
                    context.locator, attempt.healed_locator,
                )
                self._publish(HealingSucceeded(
                    step_text=context.step_text,
                    strategy=strategy.name,
                    original_locator=context.locator,
                    healed_locator=attempt.healed_locator,
                    attempts=len(attempts),
                ))
                return HealingOutcome(
                    success=True,
                    attempts=tuple(attempts),
                    healed_locator=attempt.healed_locator,
                    strategy_name=strategy.name,
                )
            if budget_hit:
                exhausted = True
                break

        self._publish(HealingExhausted(
            step_text=context.step_text,
            attempted=[a.strategy_name for a in attempts],
            budget_exhausted=exhausted,
        ))
        return HealingOutcome(success=False, attempts=tuple(attempts), exhausted=exhausted)

    # ============================================================
    # Internals
    # ============================================================

    @staticmethod
    def _ordered(strategies: List[HealingStrategy]) -> List[HealingStrategy]:
        return sorted(strategies, key=lambda s: -s.priority)

    @staticmethod
    def _applicable(strategy: HealingStrategy, context: FailureContext) -> bool:
        try:
            return strategy.is_applicable(context)
        except Exception as e:
            logger.warning("Applicability check of %s failed: %s", strategy.name, e)
            return False

    def _attempt_timeout(self, deadline: Optional[float]) -> Tuple[Optional[float], bool]:
        """Timeout for the next attempt and whether the time budget binds it."""
        per_attempt = self.attempt_timeout_ms / 1000.0 if self.attempt_timeout_ms else None
        if deadline is None:
            return per_attempt, False
        remaining = max(0.0, deadline - time.monotonic())
        if per_attempt is None or remaining <= per_attempt:
            return remaining, True
        return per_attempt, False

    @staticmethod
    async def _attempt(strategy: HealingStrategy, context: FailureContext) -> StrategyResult:
        # Wrapping keeps a TimeoutError raised by the strategy distinct
        # from the attempt timing out.
        try:
            result = await strategy.attempt(context)
        except Exception as e:
            raise _StrategyFailure(e) from e
        if not isinstance(result, StrategyResult):
            raise _StrategyFailure(TypeError(
                f"{strategy.name} returned {type(result).__name__}, not StrategyResult"
            ))
        return result

    async def _run_attempt(
        self,
        strategy: HealingStrategy,
        context: FailureContext,
        deadline: Optional[float],
    ) -> Tuple[HealingAttempt, bool]:
        timeout, budget_bound = self._attempt_timeout(deadline)
        budget_hit = False
        error: Optional[str] = None
        result = None
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(self._attempt(strategy, context), timeout)
        except asyncio.TimeoutError:
            budget_hit = budget_bound
            error = (
                "cancelled: healing time budget exhausted" if budget_hit
                else f"timed out after {self.attempt_timeout_ms}ms"
            )
            logger.warning("Healing strategy %s %s", strategy.name, error)
        except _StrategyFailure as e:
            error = f"{type(e.cause).__name__}: {e.cause}"
            logger.warning("Healing strategy %s raised %s", strategy.name, error)
        duration = Milliseconds.between(start, time.monotonic()).value

        if result is None or not result.success:
            return HealingAttempt(
                strategy_name=strategy.name,
                success=False,
                confidence=0.0,
                duration_ms=duration,
                original_locator=context.locator,
                error=error or (result.detail if result is not None else None) or None,
            ), budget_hit

        confidence = result.confidence if result.confidence is not None else strategy.confidence
        if confidence < self.confidence_threshold:
            return HealingAttempt(
                strategy_name=strategy.name,
                success=False,
                confidence=confidence,
                duration_ms=duration,
                original_locator=context.locator,
                healed_locator=result.healed_locator,
                error=(
                    f"confidence {confidence:.2f} below threshold "
                    f"{self.confidence_threshold:.2f}"
                ),
            ), budget_hit

        return HealingAttempt(
            strategy_name=strategy.name,
            success=True,
            confidence=confidence,
            duration_ms=duration,
            original_locator=context.locator,
            healed_locator=result.healed_locator or context.locator,
        ), budget_hit

    def _publish(self, event: Any) -> None:
        if self.event_publisher is not None:
            self.event_publisher(event)
