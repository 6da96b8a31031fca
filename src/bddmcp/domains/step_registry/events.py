"""Step Registry Domain Events."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class StepDefinitionRegistered:
    """Emitted after a definition is accepted by the registry."""
    pattern: str
    keyword: str
    group: str
    timeout_ms: Any = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "step_definition_registered",
            "pattern": self.pattern,
            "keyword": self.keyword,
            "group": self.group,
            "timeout_ms": self.timeout_ms,
        }


@dataclass(frozen=True)
class StepRegistrationRejected:
    """Emitted when a definition conflicts with an existing one."""
    pattern: str
    conflicts_with: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "step_registration_rejected",
            "pattern": self.pattern,
            "conflicts_with": self.conflicts_with,
        }
