"""Step Registry Bounded Context.

Holds compiled step definitions, rejects ambiguous registrations, and
resolves step text to a handler with typed arguments.
"""
from .value_objects import KeywordClass, SourceLocation, StepGroup, split_keyword
from .entities import RegistrationResult, StepDefinition, StepMatch
from .aggregates import StepRegistry
from .metadata import (
    CollectingMetadataEmitter, NullMetadataEmitter, StepMetadataEmitter,
)
from .services import StepDeclaration, StepLoader, StepSource
from .events import StepDefinitionRegistered, StepRegistrationRejected

__all__ = [
    "KeywordClass", "SourceLocation", "StepGroup", "split_keyword",
    "RegistrationResult", "StepDefinition", "StepMatch",
    "StepRegistry",
    "CollectingMetadataEmitter", "NullMetadataEmitter", "StepMetadataEmitter",
    "StepDeclaration", "StepLoader", "StepSource",
    "StepDefinitionRegistered", "StepRegistrationRejected",
]
