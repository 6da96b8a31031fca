"""Module Detection Domain Events."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class ModulesDetected:
    """Emitted on every uncached detection.

    ``source`` says which rule decided: module_list, disabled, tags,
    patterns or default_browser.
    """
    scenario: str
    mode: str
    source: str
    modules: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "modules_detected",
            "scenario": self.scenario,
            "mode": self.mode,
            "source": self.source,
            "modules": self.modules,
        }
