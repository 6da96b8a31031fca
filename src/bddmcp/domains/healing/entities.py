"""Healing Domain Entities."""
from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional


@dataclass(frozen=True)
class HealedLocator:
    """A locator substitution that healed a step and passed on retry."""
    original: str
    healed: str
    strategy_name: str
    confidence: float


@dataclass
class HealingHistory:
    """Per-worker memory of successful heals.

    Feeds the historical pattern strategy and the statistics report.
    Owned by exactly one WorkerExecutionContext and cleared on close.

    Invariants:
        - At most ``max_per_locator`` heals are kept per original
          locator; the oldest is dropped first.
    """
    max_per_locator: int = 10
    _heals: Dict[str, Deque[HealedLocator]] = field(default_factory=dict)
    _attempted: Counter = field(default_factory=Counter)
    _succeeded: Counter = field(default_factory=Counter)
    _outcomes: Counter = field(default_factory=Counter)

    def record_heal(self, original: str, healed: str, strategy_name: str,
                    confidence: float) -> None:
        entries = self._heals.setdefault(original, deque(maxlen=self.max_per_locator))
        entries.append(HealedLocator(original, healed, strategy_name, confidence))

    def record_outcome(self, outcome: Any) -> None:
        """Count a HealingOutcome for statistics."""
        self._outcomes["success" if outcome.success else "failure"] += 1
        for attempt in outcome.attempts:
            self._attempted[attempt.strategy_name] += 1
            if attempt.success:
                self._succeeded[attempt.strategy_name] += 1

    def candidates(self, original: Optional[str]) -> List[HealedLocator]:
        """Past heals for a locator, best confidence first, newest first on ties."""
        if not original or original not in self._heals:
            return []
        newest_first = list(reversed(self._heals[original]))
        return sorted(newest_first, key=lambda h: -h.confidence)

    def statistics(self) -> Dict[str, Any]:
        total = self._outcomes["success"] + self._outcomes["failure"]
        return {
            "total_heals": total,
            "successful_heals": self._outcomes["success"],
            "success_rate": (self._outcomes["success"] / total) if total else 0.0,
            "remembered_locators": len(self._heals),
            "strategies": {
                name: {
                    "attempted": count,
                    "succeeded": self._succeeded[name],
                }
                for name, count in sorted(self._attempted.items())
            },
        }

    def clear(self) -> None:
        self._heals.clear()
        self._attempted.clear()
        self._succeeded.clear()
        self._outcomes.clear()

    def __len__(self) -> int:
        return sum(len(v) for v in self._heals.values())
