"""Step Registry Entities.

A StepDefinition is identified by its pattern: the registry never holds
two definitions whose patterns can match the same text.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from bddmcp.domains.step_pattern import PatternCompiler, StepPattern, TypedValue

from .value_objects import KeywordClass, SourceLocation, StepGroup


@dataclass(frozen=True)
class StepDefinition:
    """A compiled step definition bound to its handler.

    Attributes:
        pattern: Compiled phrase pattern.
        keyword_class: Declaring keyword (metadata only).
        handler: Callable invoked as ``handler(context, *typed, *bound)``.
            Coroutine functions are awaited.
        timeout_ms: Optional per-step timeout override.
        declared_at: Declaration site for diagnostics.
        group: Library group for selective loading.
    """
    pattern: StepPattern
    keyword_class: KeywordClass
    handler: Callable[..., Any]
    timeout_ms: Optional[int] = None
    declared_at: Optional[SourceLocation] = None
    group: StepGroup = StepGroup.COMMON

    def __post_init__(self) -> None:
        if not callable(self.handler):
            raise TypeError(f"Step handler for {self.pattern.template!r} is not callable")
        if self.timeout_ms is not None:
            if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int):
                raise ValueError(f"timeout_ms must be an integer, got {self.timeout_ms!r}")
            if self.timeout_ms <= 0:
                raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")

    @classmethod
    def create(
        cls,
        template: str,
        handler: Callable[..., Any],
        keyword_class: KeywordClass = KeywordClass.GENERIC,
        timeout_ms: Optional[int] = None,
        group: StepGroup = StepGroup.COMMON,
        compiler: Optional[PatternCompiler] = None,
    ) -> "StepDefinition":
        """Factory: compile the template and capture the declaration site."""
        compiler = compiler or PatternCompiler()
        return cls(
            pattern=compiler.compile(template),
            keyword_class=keyword_class,
            handler=handler,
            timeout_ms=timeout_ms,
            declared_at=SourceLocation.from_callable(handler),
            group=group,
        )

    @property
    def template(self) -> str:
        return self.pattern.template

    def describe(self) -> str:
        where = f" ({self.declared_at})" if self.declared_at else ""
        return f"{self.keyword_class.value} {self.pattern.template!r}{where}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern.template,
            "keyword": self.keyword_class.value,
            "placeholders": [t.value for t in self.pattern.placeholder_types],
            "timeout_ms": self.timeout_ms,
            "group": self.group.value,
            "declared_at": self.declared_at.to_dict() if self.declared_at else None,
        }


@dataclass(frozen=True)
class StepMatch:
    """A resolved step: the definition plus the arguments it extracted."""
    definition: StepDefinition
    step_text: str
    arguments: Tuple[TypedValue, ...] = ()

    @property
    def values(self) -> Tuple[Any, ...]:
        return tuple(a.value for a in self.arguments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_text": self.step_text,
            "definition": self.definition.to_dict(),
            "arguments": [a.to_dict() for a in self.arguments],
        }


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a successful registration."""
    definition: StepDefinition
    index: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.definition.pattern.template,
            "index": self.index,
            "total": self.total,
        }
