"""Module Detection Bounded Context.

Decides which runtime subsystems (UI, API, database, SOAP) a scenario
needs from its tags and step text.
"""
from .value_objects import (
    DetectionMode, DetectionPolicy, Module, ModuleRequirement,
    ScenarioDescriptor, normalize_tag,
)
from .vocabulary import (
    MODULE_ALIASES, STEP_PATTERNS, TAG_TABLE,
    classify_step, is_ui_step, parse_module_list,
)
from .aggregates import ModuleDetector
from .events import ModulesDetected

__all__ = [
    "DetectionMode", "DetectionPolicy", "Module", "ModuleRequirement",
    "ScenarioDescriptor", "normalize_tag",
    "MODULE_ALIASES", "STEP_PATTERNS", "TAG_TABLE",
    "classify_step", "is_ui_step", "parse_module_list",
    "ModuleDetector",
    "ModulesDetected",
]
