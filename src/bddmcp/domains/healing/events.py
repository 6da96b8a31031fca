"""Healing Domain Events.

Emitted during the healing lifecycle for observability. All events are
frozen dataclasses with a ``to_dict`` for publishing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class HealingAttempted:
    """Emitted after each strategy attempt."""
    step_text: str
    strategy: str
    success: bool
    confidence: float
    duration_ms: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "healing_attempted",
            "step_text": self.step_text,
            "strategy": self.strategy,
            "success": self.success,
            "confidence": self.confidence,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class HealingSucceeded:
    """Emitted when a strategy heals the failure."""
    step_text: str
    strategy: str
    original_locator: Optional[str]
    healed_locator: Optional[str]
    attempts: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "healing_succeeded",
            "step_text": self.step_text,
            "strategy": self.strategy,
            "original_locator": self.original_locator,
            "healed_locator": self.healed_locator,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class HealingExhausted:
    """Emitted when no strategy healed the failure."""
    step_text: str
    attempted: List[str]
    budget_exhausted: bool
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "healing_exhausted",
            "step_text": self.step_text,
            "attempted": list(self.attempted),
            "budget_exhausted": self.budget_exhausted,
        }
