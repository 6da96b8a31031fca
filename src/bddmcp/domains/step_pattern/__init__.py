"""Step Pattern Bounded Context.

Compiles Gherkin phrase templates with typed placeholders and extracts
typed arguments from literal step text.
"""
from .value_objects import (
    LiteralSegment, PlaceholderSegment, PlaceholderType,
    StepPattern, TypedValue,
)
from .services import PatternCompiler

__all__ = [
    "LiteralSegment", "PlaceholderSegment", "PlaceholderType",
    "StepPattern", "TypedValue",
    "PatternCompiler",
]
