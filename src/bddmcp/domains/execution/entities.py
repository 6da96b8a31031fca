"""Execution Domain Entities.

StepExecution tracks one step through the dispatcher state machine.
StepContext is the mutable, per-scenario object injected into every
handler.
"""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class StepPhase(str, enum.Enum):
    """Phases of a step inside the dispatcher.

    PENDING -> MATCHING -> INVOKING -> PASSED | FAILED
    FAILED -> HEALING -> INVOKING (one retry) | FAILED
    """
    PENDING = "pending"
    MATCHING = "matching"
    INVOKING = "invoking"
    PASSED = "passed"
    FAILED = "failed"
    HEALING = "healing"


_TRANSITIONS = {
    StepPhase.PENDING: {StepPhase.MATCHING},
    StepPhase.MATCHING: {StepPhase.INVOKING, StepPhase.FAILED},
    StepPhase.INVOKING: {StepPhase.PASSED, StepPhase.FAILED},
    StepPhase.FAILED: {StepPhase.HEALING},
    StepPhase.HEALING: {StepPhase.INVOKING, StepPhase.FAILED},
    StepPhase.PASSED: set(),
}


@dataclass
class StepExecution:
    """Lifecycle-tracked execution of one step.

    Invariants:
        - Only transitions in the phase diagram are allowed.
        - HEALING is entered at most once, so a step is retried at
          most once.
    """
    step_text: str
    phase: StepPhase = StepPhase.PENDING
    healed: bool = False
    history: List[Tuple[StepPhase, float]] = field(default_factory=list)

    def advance(self, to: StepPhase) -> None:
        """Move to ``to``.

        Raises:
            ValueError: On a transition outside the phase diagram or a
                second entry into HEALING.
        """
        if to not in _TRANSITIONS[self.phase]:
            raise ValueError(
                f"Invalid step phase transition {self.phase.value} -> {to.value}"
            )
        if to == StepPhase.HEALING:
            if self.healed:
                raise ValueError("A step can enter healing only once")
            self.healed = True
        self.history.append((self.phase, time.monotonic()))
        self.phase = to

    @property
    def phases(self) -> List[StepPhase]:
        return [p for p, _ in self.history] + [self.phase]


@dataclass
class StepContext:
    """Per-scenario context injected as the first handler argument.

    Attributes:
        worker_id: Worker that runs the scenario.
        scenario: Scenario name.
        variables: Free-form state shared between steps of a scenario.
        driver: UiDriver the healing strategies use for this scenario.
        healed_locator: Set only during a healed retry.
    """
    worker_id: Optional[str] = None
    scenario: str = ""
    variables: Dict[str, Any] = field(default_factory=dict)
    driver: Any = None
    healed_locator: Optional[str] = None

    def locator(self, default: str) -> str:
        """The healed locator during a retry, otherwise ``default``."""
        return self.healed_locator or default

    def __getitem__(self, key: str) -> Any:
        return self.variables[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.variables[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.variables.get(key, default)
