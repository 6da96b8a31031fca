"""IDE metadata emission capability.

The registry reports each registered definition to a metadata emitter so
optional IDE tooling can index steps. Emission is best-effort: a missing
or failing emitter never affects registration.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .entities import StepDefinition


@runtime_checkable
class StepMetadataEmitter(Protocol):
    """Anti-corruption layer for IDE plugin integration."""

    def emit(self, definition: "StepDefinition") -> None:
        ...


class NullMetadataEmitter:
    """Default emitter: does nothing."""

    def emit(self, definition: "StepDefinition") -> None:
        return None


class CollectingMetadataEmitter:
    """Keeps emitted metadata in memory for later export."""

    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []

    def emit(self, definition: "StepDefinition") -> None:
        self.records.append(definition.to_dict())
