"""Execution Domain Events."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class StepCompleted:
    """Emitted once per dispatched step."""
    step_text: str
    status: str
    duration_ms: int
    error_kind: Optional[str] = None
    healed: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "step_completed",
            "step_text": self.step_text,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "error_kind": self.error_kind,
            "healed": self.healed,
        }


@dataclass(frozen=True)
class ScenarioCompleted:
    """Emitted when a scenario finishes on a worker."""
    name: str
    passed: bool
    steps: int
    worker_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "scenario_completed",
            "name": self.name,
            "passed": self.passed,
            "steps": self.steps,
            "worker_id": self.worker_id,
        }
