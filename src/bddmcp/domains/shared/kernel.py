"""Shared Kernel - Core types shared across bounded contexts.

A duration value object used by the execution and healing contexts,
plus the constrained selector aliases consumed by the configuration
model and the MCP tool surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, TypeAdapter


@dataclass(frozen=True)
class Milliseconds:
    """Type-safe milliseconds value object.

    Examples:
        >>> Milliseconds(2500).to_seconds()
        2.5
        >>> Milliseconds.seconds(0.1)
        Milliseconds(value=100)
    """
    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Duration cannot be negative, got {self.value}")

    @classmethod
    def seconds(cls, seconds: float) -> "Milliseconds":
        return cls(value=int(seconds * 1000))

    @classmethod
    def between(cls, start: float, end: float) -> "Milliseconds":
        """Duration between two ``time.monotonic()`` readings."""
        return cls(value=max(0, int((end - start) * 1000)))

    def to_seconds(self) -> float:
        return self.value / 1000.0

    def __str__(self) -> str:
        return f"{self.value}ms"

    def __repr__(self) -> str:
        return f"Milliseconds(value={self.value})"


# ============================================================
# Constrained selector types
# ============================================================
#
# Literal aliases with BeforeValidator for case-insensitive
# normalization. They produce a flat {"enum": [...]} JSON schema
# for MCP tools while accepting wrong-case input at runtime.
# ============================================================


def _normalize_str(v: Any) -> Any:
    """Normalize string input: strip whitespace, lowercase."""
    return v.strip().lower() if isinstance(v, str) else v


DetectionModeLiteral = Annotated[
    Literal["auto", "explicit", "hybrid"],
    BeforeValidator(_normalize_str),
]

StepLoadingStrategyLiteral = Annotated[
    Literal["all", "selective"],
    BeforeValidator(_normalize_str),
]

_ADAPTERS = {
    "detection_mode": TypeAdapter(DetectionModeLiteral),
    "step_loading_strategy": TypeAdapter(StepLoadingStrategyLiteral),
}


def normalize_selector(kind: str, value: Any) -> str:
    """Validate and normalize a selector value.

    Args:
        kind: ``"detection_mode"`` or ``"step_loading_strategy"``.
        value: Raw value, e.g. ``" Hybrid "``.

    Raises:
        pydantic.ValidationError: If the value is not an allowed choice.
        KeyError: If ``kind`` is unknown.
    """
    return _ADAPTERS[kind].validate_python(value)
