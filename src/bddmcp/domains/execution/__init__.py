"""Execution Bounded Context.

Dispatches step text to handlers with bounded timeouts and drives
healing for UI-classified failures.
"""
from .value_objects import ErrorKind, ScenarioResult, StepResult, StepStatus
from .entities import StepContext, StepExecution, StepPhase
from .services import DEFAULT_STEP_TIMEOUT_MS, ScenarioRunner, StepDispatcher
from .events import ScenarioCompleted, StepCompleted

__all__ = [
    "ErrorKind", "ScenarioResult", "StepResult", "StepStatus",
    "StepContext", "StepExecution", "StepPhase",
    "DEFAULT_STEP_TIMEOUT_MS", "ScenarioRunner", "StepDispatcher",
    "ScenarioCompleted", "StepCompleted",
]
