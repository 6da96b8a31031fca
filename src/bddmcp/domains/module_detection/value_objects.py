"""Module Detection Value Objects."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Tuple


class Module(str, enum.Enum):
    """A runtime subsystem a scenario may need."""
    UI = "ui"
    API = "api"
    DATABASE = "database"
    SOAP = "soap"


class DetectionMode(str, enum.Enum):
    """How module requirements are derived.

    EXPLICIT: tags only.
    AUTO: step text patterns only.
    HYBRID: tags when any tag maps to a module, otherwise patterns.
        The two signals are never merged.
    """
    AUTO = "auto"
    EXPLICIT = "explicit"
    HYBRID = "hybrid"


def normalize_tag(tag: str) -> str:
    """``" @API "`` -> ``"api"``."""
    return tag.strip().lstrip("@").strip().lower()


@dataclass(frozen=True)
class ModuleRequirement:
    """Which subsystems must be initialized before a scenario runs."""
    ui: bool = False
    api: bool = False
    database: bool = False
    soap: bool = False

    @classmethod
    def none(cls) -> "ModuleRequirement":
        return cls()

    @classmethod
    def of(cls, modules: Iterable[Module]) -> "ModuleRequirement":
        wanted = {Module(m) for m in modules}
        return cls(
            ui=Module.UI in wanted,
            api=Module.API in wanted,
            database=Module.DATABASE in wanted,
            soap=Module.SOAP in wanted,
        )

    def union(self, other: "ModuleRequirement") -> "ModuleRequirement":
        return ModuleRequirement(
            ui=self.ui or other.ui,
            api=self.api or other.api,
            database=self.database or other.database,
            soap=self.soap or other.soap,
        )

    def with_ui(self) -> "ModuleRequirement":
        return ModuleRequirement(ui=True, api=self.api, database=self.database, soap=self.soap)

    def requires(self, module: Module) -> bool:
        return bool(getattr(self, Module(module).value))

    @property
    def is_empty(self) -> bool:
        return not (self.ui or self.api or self.database or self.soap)

    def enabled_modules(self) -> Tuple[Module, ...]:
        return tuple(m for m in Module if self.requires(m))

    @property
    def summary(self) -> str:
        """Comma-separated enabled modules, or ``"none"``."""
        return ", ".join(m.value for m in self.enabled_modules()) or "none"

    def to_dict(self) -> Dict[str, bool]:
        return {
            "ui": self.ui,
            "api": self.api,
            "database": self.database,
            "soap": self.soap,
        }


@dataclass(frozen=True)
class ScenarioDescriptor:
    """Input to module detection for one scenario.

    Attributes:
        name: Scenario name, used only for logging.
        tags: Scenario tags, with or without the leading ``@``.
        step_texts: Step lines in declared order.
        feature_tags: Tags inherited from the enclosing feature.
    """
    name: str = ""
    tags: Tuple[str, ...] = ()
    step_texts: Tuple[str, ...] = ()
    feature_tags: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable but store tuples so the descriptor is hashable.
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "step_texts", tuple(self.step_texts))
        object.__setattr__(self, "feature_tags", tuple(self.feature_tags))

    @property
    def all_tags(self) -> Tuple[str, ...]:
        return self.feature_tags + self.tags

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioDescriptor":
        return cls(
            name=data.get("name", ""),
            tags=data.get("tags", ()),
            step_texts=data.get("steps", data.get("step_texts", ())),
            feature_tags=data.get("feature_tags", ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tags": list(self.tags),
            "feature_tags": list(self.feature_tags),
            "steps": list(self.step_texts),
        }


@dataclass(frozen=True)
class DetectionPolicy:
    """Configured detection behaviour.

    Attributes:
        mode: Tag, pattern or hybrid detection.
        enabled: When False every scenario gets ``{ui}``.
        default_browser: Force ``ui`` when nothing else was detected.
        browser_always: Force a browser regardless of detection.
        explicit_modules: Module list that overrides detection entirely.
        log_detection: Log every detection result.
    """
    mode: DetectionMode = DetectionMode.HYBRID
    enabled: bool = True
    default_browser: bool = True
    browser_always: bool = False
    explicit_modules: Tuple[Module, ...] = ()
    log_detection: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", DetectionMode(self.mode))
        object.__setattr__(
            self, "explicit_modules", tuple(Module(m) for m in self.explicit_modules)
        )

    @classmethod
    def hybrid(cls) -> "DetectionPolicy":
        return cls(mode=DetectionMode.HYBRID)

    @classmethod
    def explicit(cls) -> "DetectionPolicy":
        return cls(mode=DetectionMode.EXPLICIT)

    @classmethod
    def auto(cls) -> "DetectionPolicy":
        return cls(mode=DetectionMode.AUTO)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "enabled": self.enabled,
            "default_browser": self.default_browser,
            "browser_always": self.browser_always,
            "explicit_modules": [m.value for m in self.explicit_modules],
        }
