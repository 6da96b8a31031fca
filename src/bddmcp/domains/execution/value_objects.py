"""Execution Domain Value Objects.

Immutable types that carry no identity. Equality is structural.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from bddmcp.domains.healing import HealingAttempt
from bddmcp.domains.module_detection import ModuleRequirement


class StepStatus(str, Enum):
    """Reported outcome of a single step.

    Values:
        PASSED: Handler returned, possibly after a healed retry.
        FAILED: Handler raised, or the step was ambiguous.
        TIMED_OUT: Handler exceeded its time bound.
        UNDEFINED: No definition matched the step text.
    """
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    UNDEFINED = "undefined"


class ErrorKind(str, Enum):
    """Why a step did not pass, for the reporter."""
    UNDEFINED = "undefined"
    AMBIGUOUS = "ambiguous"
    TIMEOUT = "timeout"
    HANDLER = "handler"


@dataclass(frozen=True)
class StepResult:
    """Result record handed to the reporter for one step.

    Attributes:
        step_text: The step as dispatched.
        status: Final status.
        duration_ms: Wall time including healing and retry.
        error_kind: Set when status is not PASSED.
        error_message: Human-readable failure detail.
        healing_attempts: Every healing attempt, in order.
        healed: The step passed on a healed retry.
        healed_locator: Locator used for the retry.
        pattern: Template of the matched definition.
        timeout_ms: Timeout that applied to the handler.
    """
    step_text: str
    status: StepStatus
    duration_ms: int
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    healing_attempts: Tuple[HealingAttempt, ...] = ()
    healed: bool = False
    healed_locator: Optional[str] = None
    pattern: Optional[str] = None
    timeout_ms: Optional[int] = None

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "step": self.step_text,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
        }
        if self.pattern is not None:
            data["pattern"] = self.pattern
        if self.error_kind is not None:
            data["error_kind"] = self.error_kind.value
            data["error"] = self.error_message
        if self.healing_attempts:
            data["healing"] = {
                "healed": self.healed,
                "healed_locator": self.healed_locator,
                "attempts": [a.to_dict() for a in self.healing_attempts],
            }
        return data


@dataclass(frozen=True)
class ScenarioResult:
    """Aggregated result of one scenario, returned by a worker."""
    name: str
    requirement: ModuleRequirement
    steps: Tuple[StepResult, ...] = ()
    skipped: Tuple[str, ...] = ()
    duration_ms: int = 0
    worker_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return (
            self.error is None
            and not self.skipped
            and all(s.passed for s in self.steps)
        )

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((s for s in self.steps if not s.passed), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": "passed" if self.passed else "failed",
            "worker_id": self.worker_id,
            "modules": self.requirement.to_dict(),
            "duration_ms": self.duration_ms,
            "steps": [s.to_dict() for s in self.steps],
            "skipped": list(self.skipped),
            "error": self.error,
        }
