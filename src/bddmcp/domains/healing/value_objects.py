"""Healing Domain Value Objects.

Immutable types that carry no identity. Equality is structural.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple,
)

if TYPE_CHECKING:
    from .entities import HealingHistory


@dataclass(frozen=True)
class FailureContext:
    """Everything a healing strategy may inspect about a UI failure.

    Attributes:
        step_text: The failing step.
        error: The handler's exception.
        locator: Descriptor of the element that could not be used.
        alternatives: Alternative locators the handler supplied.
        driver: The worker's UiDriver, if the handler exposed one.
        history: The worker's healing history, if any.
    """
    step_text: str
    error: Optional[BaseException] = None
    locator: Optional[str] = None
    alternatives: Tuple[str, ...] = ()
    driver: Any = field(default=None, compare=False, repr=False)
    history: Optional["HealingHistory"] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_error(
        cls,
        step_text: str,
        error: BaseException,
        driver: Any = None,
        history: Optional["HealingHistory"] = None,
    ) -> "FailureContext":
        """Build a context from a handler exception.

        Any exception exposing ``locator`` (and optionally
        ``alternatives`` and ``driver``) contributes those values.
        """
        return cls(
            step_text=step_text,
            error=error,
            locator=getattr(error, "locator", None),
            alternatives=tuple(getattr(error, "alternatives", ()) or ()),
            driver=getattr(error, "driver", None) or driver,
            history=history,
        )

    @property
    def error_message(self) -> str:
        return str(self.error) if self.error is not None else ""

    @property
    def has_target(self) -> bool:
        return bool(self.locator) and self.driver is not None


@dataclass(frozen=True)
class StrategyResult:
    """What a strategy reports back to the engine.

    ``confidence`` of None means the strategy's nominal confidence.
    """
    success: bool
    healed_locator: Optional[str] = None
    confidence: Optional[float] = None
    detail: str = ""

    @classmethod
    def healed(cls, locator: Optional[str], confidence: Optional[float] = None,
               detail: str = "") -> "StrategyResult":
        return cls(success=True, healed_locator=locator, confidence=confidence, detail=detail)

    @classmethod
    def failed(cls, detail: str = "") -> "StrategyResult":
        return cls(success=False, confidence=0.0, detail=detail)


def _always(context: FailureContext) -> bool:
    return True


@dataclass(frozen=True)
class HealingStrategy:
    """A named recovery approach.

    Attributes:
        name: Unique strategy identifier (e.g. "scroll_into_view").
        priority: Higher values are tried first.
        attempt: Async function performing the recovery.
        applicability: Predicate deciding whether to attempt at all.
        confidence: Nominal confidence reported on success, in [0, 1].
        description: Human-readable description for diagnostics.
    """
    name: str
    priority: int
    attempt: Callable[[FailureContext], Awaitable[StrategyResult]] = field(compare=False)
    applicability: Callable[[FailureContext], bool] = field(default=_always, compare=False)
    confidence: float = 1.0
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Healing strategy name must not be empty")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"Confidence for {self.name!r} must be in [0, 1], got {self.confidence}"
            )

    def is_applicable(self, context: FailureContext) -> bool:
        return bool(self.applicability(context))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "priority": self.priority,
            "confidence": self.confidence,
            "description": self.description,
        }


@dataclass(frozen=True)
class HealingAttempt:
    """Audit record of one strategy attempt. Never mutated."""
    strategy_name: str
    success: bool
    confidence: float
    duration_ms: int
    original_locator: Optional[str] = None
    healed_locator: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy_name,
            "success": self.success,
            "confidence": round(self.confidence, 3),
            "duration_ms": self.duration_ms,
            "original_locator": self.original_locator,
            "healed_locator": self.healed_locator,
            "error": self.error,
        }


@dataclass(frozen=True)
class HealingOutcome:
    """Result of one ``HealingEngine.heal`` call.

    Attributes:
        success: A strategy healed the failure.
        attempts: Every attempted strategy, in order.
        healed_locator: The locator to use on retry.
        strategy_name: The winning strategy.
        exhausted: The attempt or time budget ran out before the chain
            finished.
    """
    success: bool
    attempts: Tuple[HealingAttempt, ...] = ()
    healed_locator: Optional[str] = None
    strategy_name: Optional[str] = None
    exhausted: bool = False

    @property
    def attempted_strategies(self) -> List[str]:
        return [a.strategy_name for a in self.attempts]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "healed_locator": self.healed_locator,
            "strategy": self.strategy_name,
            "exhausted": self.exhausted,
            "attempts": [a.to_dict() for a in self.attempts],
        }
