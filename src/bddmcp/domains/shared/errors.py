"""Engine error taxonomy.

Registration-time errors (PatternError, AmbiguousStepError) abort
startup. Step-time errors are converted into step results by the
dispatcher and never escape ``StepDispatcher.execute``.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from bddmcp.domains.step_registry.entities import StepDefinition


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class PatternError(EngineError):
    """A step template is malformed."""

    def __init__(self, template: str, reason: str, position: Optional[int] = None):
        self.template = template
        self.reason = reason
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Invalid step pattern {template!r}{where}: {reason}")


class AmbiguousStepError(EngineError):
    """Two or more step definitions match the same text."""

    def __init__(
        self,
        definitions: Sequence["StepDefinition"],
        step_text: Optional[str] = None,
    ):
        self.definitions: Tuple["StepDefinition", ...] = tuple(definitions)
        self.step_text = step_text
        described = " and ".join(d.describe() for d in self.definitions)
        if step_text is not None:
            message = f"Step {step_text!r} is ambiguous: matched by {described}"
        else:
            message = f"Ambiguous step definitions: {described}"
        super().__init__(message)

    @property
    def existing(self) -> "StepDefinition":
        return self.definitions[0]

    @property
    def conflicting(self) -> "StepDefinition":
        return self.definitions[-1]


class UndefinedStepError(EngineError):
    """No registered definition matches a step text."""

    def __init__(self, step_text: str):
        self.step_text = step_text
        super().__init__(f"Undefined step: {step_text!r}")


class StepTimeoutError(EngineError, TimeoutError):
    """A step handler exceeded its time bound."""

    def __init__(self, step_text: str, timeout_ms: int):
        self.step_text = step_text
        self.timeout_ms = timeout_ms
        super().__init__(f"Step {step_text!r} timed out after {timeout_ms}ms")


class HandlerError(EngineError):
    """Wraps an exception raised by a step handler."""

    def __init__(self, step_text: str, cause: BaseException):
        self.step_text = step_text
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")


class ElementNotFoundError(EngineError):
    """Raised by UI step handlers when a target element cannot be located.

    Carries the locator descriptor and any alternative locators the
    handler knows about, which feed the healing failure context.
    """

    def __init__(
        self,
        locator: str,
        message: Optional[str] = None,
        alternatives: Sequence[str] = (),
        driver: Any = None,
    ):
        self.locator = locator
        self.alternatives = tuple(alternatives)
        self.driver = driver
        super().__init__(message or f"Element not found: {locator}")
