"""Shared kernel and error taxonomy used across bounded contexts."""
from .kernel import (
    DetectionModeLiteral,
    Milliseconds,
    StepLoadingStrategyLiteral,
    normalize_selector,
)
from .errors import (
    AmbiguousStepError,
    ElementNotFoundError,
    EngineError,
    HandlerError,
    PatternError,
    StepTimeoutError,
    UndefinedStepError,
)

__all__ = [
    "DetectionModeLiteral", "Milliseconds",
    "StepLoadingStrategyLiteral", "normalize_selector",
    "AmbiguousStepError", "ElementNotFoundError", "EngineError",
    "HandlerError", "PatternError", "StepTimeoutError",
    "UndefinedStepError",
]
