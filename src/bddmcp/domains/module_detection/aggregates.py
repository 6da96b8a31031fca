"""Module Detection Aggregate Root."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from .events import ModulesDetected
from .value_objects import (
    DetectionMode, DetectionPolicy, ModuleRequirement, ScenarioDescriptor,
    normalize_tag,
)
from .vocabulary import TAG_TABLE, classify_step

logger = logging.getLogger(__name__)


@dataclass
class ModuleDetector:
    """Computes the ModuleRequirement for a scenario.

    Precedence:
        1. A non-empty explicit module list in the policy wins outright.
        2. Detection disabled yields ``{ui}``.
        3. The policy mode: tags (explicit), patterns (auto), or tags
           if any tag maps to a module else patterns (hybrid).
        4. An all-false result becomes ``{ui}`` when the default-browser
           fallback is on.

    ``detect`` is a pure function of ``(scenario, policy)``. The result
    cache is owned by the instance and each worker owns its own
    detector.
    """
    _cache: Dict[Tuple[ScenarioDescriptor, DetectionPolicy], ModuleRequirement] = field(
        default_factory=dict, repr=False
    )
    event_publisher: Optional[Callable[[Any], None]] = None

    def detect(self, scenario: ScenarioDescriptor, policy: DetectionPolicy) -> ModuleRequirement:
        key = (scenario, policy)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        requirement, source = self._compute(scenario, policy)
        self._cache[key] = requirement

        if policy.log_detection:
            logger.info(
                "Module detection (%s via %s): %s | Scenario: %s",
                policy.mode.value, source, requirement.summary, scenario.name,
            )
        if self.event_publisher is not None:
            self.event_publisher(ModulesDetected(
                scenario=scenario.name,
                mode=policy.mode.value,
                source=source,
                modules=requirement.summary,
            ))
        return requirement

    def detect_all(
        self, scenarios: Iterable[ScenarioDescriptor], policy: DetectionPolicy,
    ) -> ModuleRequirement:
        """Union of the requirements of several scenarios."""
        total = ModuleRequirement.none()
        for scenario in scenarios:
            total = total.union(self.detect(scenario, policy))
        return total

    def is_browser_required(
        self, requirement: ModuleRequirement, policy: DetectionPolicy,
    ) -> bool:
        return policy.browser_always or requirement.ui

    def bootstrap_requirement(
        self, requirement: ModuleRequirement, policy: DetectionPolicy,
    ) -> ModuleRequirement:
        """The requirement to hand to subsystem bootstrap."""
        if self.is_browser_required(requirement, policy) and not requirement.ui:
            return requirement.with_ui()
        return requirement

    def clear(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ============================================================
    # Policies
    # ============================================================

    def _compute(
        self, scenario: ScenarioDescriptor, policy: DetectionPolicy,
    ) -> Tuple[ModuleRequirement, str]:
        if policy.explicit_modules:
            return ModuleRequirement.of(policy.explicit_modules), "module_list"
        if not policy.enabled:
            return ModuleRequirement(ui=True), "disabled"

        if policy.mode is DetectionMode.EXPLICIT:
            requirement, source = self.from_tags(scenario.all_tags), "tags"
        elif policy.mode is DetectionMode.AUTO:
            requirement, source = self.from_steps(scenario.step_texts), "patterns"
        else:
            requirement, source = self.from_tags(scenario.all_tags), "tags"
            if requirement.is_empty:
                requirement, source = self.from_steps(scenario.step_texts), "patterns"

        if requirement.is_empty and policy.default_browser:
            return ModuleRequirement(ui=True), "default_browser"
        return requirement, source

    @staticmethod
    def from_tags(tags: Iterable[str]) -> ModuleRequirement:
        """Tag policy: union of every tag's module."""
        modules = [TAG_TABLE[t] for t in map(normalize_tag, tags) if t in TAG_TABLE]
        return ModuleRequirement.of(modules)

    @staticmethod
    def from_steps(step_texts: Iterable[str]) -> ModuleRequirement:
        """Pattern policy: union of every step's module signals."""
        requirement = ModuleRequirement.none()
        for text in step_texts:
            requirement = requirement.union(ModuleRequirement.of(classify_step(text)))
        return requirement
