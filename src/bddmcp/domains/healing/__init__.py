"""Healing Bounded Context.

Ordered, priority-based recovery strategies for UI element failures.
"""
from .value_objects import (
    FailureContext, HealingAttempt, HealingOutcome,
    HealingStrategy, StrategyResult,
)
from .entities import HealedLocator, HealingHistory
from .aggregates import HealingEngine
from .services import UiDriver, derive_alternatives, describe_locator
from .strategies import default_strategies
from .events import HealingAttempted, HealingExhausted, HealingSucceeded

__all__ = [
    "FailureContext", "HealingAttempt", "HealingOutcome",
    "HealingStrategy", "StrategyResult",
    "HealedLocator", "HealingHistory",
    "HealingEngine",
    "UiDriver", "derive_alternatives", "describe_locator",
    "default_strategies",
    "HealingAttempted", "HealingExhausted", "HealingSucceeded",
]
