"""Worker Domain Events."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class WorkerStarted:
    worker_id: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": "worker_started", "worker_id": self.worker_id}


@dataclass(frozen=True)
class WorkerClosed:
    worker_id: str
    scenarios_run: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "worker_closed",
            "worker_id": self.worker_id,
            "scenarios_run": self.scenarios_run,
        }
