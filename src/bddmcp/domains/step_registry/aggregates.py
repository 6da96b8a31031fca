"""Step Registry Aggregate Root."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from bddmcp.domains.shared.errors import AmbiguousStepError, UndefinedStepError
from bddmcp.domains.step_pattern import StepPattern

from .entities import RegistrationResult, StepDefinition, StepMatch
from .events import StepDefinitionRegistered, StepRegistrationRejected
from .metadata import NullMetadataEmitter, StepMetadataEmitter
from .value_objects import StepGroup

logger = logging.getLogger(__name__)


@dataclass
class StepRegistry:
    """Aggregate root: owns every compiled step definition.

    Invariants:
        - No two definitions can match the same step text. Conflicts are
          detected at registration: identical canonical patterns, or
          texts built from one pattern (placeholder samples and the other
          pattern's literal words) that the other pattern also matches.
          The later registration is rejected with AmbiguousStepError.
        - Keyword class never takes part in matching or conflict checks.
        - Once frozen, the registry is read-only.

    Concurrency:
        Built once at startup, then frozen. Workers receive snapshots,
        so no locking is needed for reads.
    """
    _definitions: List[StepDefinition] = field(default_factory=list)
    _by_signature: Dict[Tuple[str, ...], StepDefinition] = field(default_factory=dict)
    _frozen: bool = False
    metadata_emitter: StepMetadataEmitter = field(default_factory=NullMetadataEmitter)
    event_publisher: Optional[Callable[[Any], None]] = None

    def register(self, definition: StepDefinition) -> RegistrationResult:
        """Add a definition.

        Raises:
            AmbiguousStepError: If the definition overlaps an existing one.
            RuntimeError: If the registry is frozen.
        """
        if self._frozen:
            raise RuntimeError(
                f"Step registry is frozen; cannot register {definition.describe()}"
            )

        existing = self._find_conflict(definition)
        if existing is not None:
            self._publish(StepRegistrationRejected(
                pattern=definition.pattern.template,
                conflicts_with=existing.pattern.template,
            ))
            raise AmbiguousStepError([existing, definition])

        self._definitions.append(definition)
        self._by_signature[definition.pattern.signature] = definition
        logger.debug("Registered step %s", definition.describe())

        try:
            self.metadata_emitter.emit(definition)
        except Exception as e:
            logger.warning("Step metadata emitter failed for %r: %s",
                           definition.pattern.template, e)

        self._publish(StepDefinitionRegistered(
            pattern=definition.pattern.template,
            keyword=definition.keyword_class.value,
            group=definition.group.value,
            timeout_ms=definition.timeout_ms,
        ))
        return RegistrationResult(
            definition=definition,
            index=len(self._definitions) - 1,
            total=len(self._definitions),
        )

    def match(self, step_text: str) -> StepMatch:
        """Resolve step text to a definition and its typed arguments.

        Raises:
            UndefinedStepError: If no definition matches.
            AmbiguousStepError: If several match. Registration checks
                should make this impossible; it is logged as an error.
        """
        text = step_text.strip()
        matches: List[StepMatch] = []
        for definition in self._definitions:
            arguments = definition.pattern.match(text)
            if arguments is not None:
                matches.append(StepMatch(definition=definition, step_text=text,
                                         arguments=arguments))

        if not matches:
            raise UndefinedStepError(text)
        if len(matches) > 1:
            logger.error(
                "Step %r matched %d definitions despite registration checks",
                text, len(matches),
            )
            raise AmbiguousStepError([m.definition for m in matches], step_text=text)
        return matches[0]

    def resolve(self, step_text: str) -> StepDefinition:
        """Resolve step text to its definition (see ``match``)."""
        return self.match(step_text).definition

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True
        logger.debug("Step registry frozen with %d definitions", len(self._definitions))

    def snapshot(self) -> StepRegistry:
        """Independent, frozen copy for one worker.

        Definitions are immutable and shared by reference; the
        collections holding them are not.
        """
        return StepRegistry(
            _definitions=list(self._definitions),
            _by_signature=dict(self._by_signature),
            _frozen=True,
        )

    def clear(self) -> None:
        """Teardown: drop every definition and unfreeze."""
        self._definitions.clear()
        self._by_signature.clear()
        self._frozen = False

    def by_group(self, group: StepGroup) -> List[StepDefinition]:
        return [d for d in self._definitions if d.group == group]

    @property
    def definitions(self) -> Tuple[StepDefinition, ...]:
        return tuple(self._definitions)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(tuple(self._definitions))

    # ============================================================
    # Conflict detection
    # ============================================================

    def _find_conflict(self, definition: StepDefinition) -> Optional[StepDefinition]:
        same = self._by_signature.get(definition.pattern.signature)
        if same is not None:
            return same

        for existing in self._definitions:
            if self._overlaps(definition.pattern, existing.pattern):
                return existing
        return None

    @staticmethod
    def _overlaps(a: StepPattern, b: StepPattern) -> bool:
        """True if some text built from one pattern also matches the other.

        Placeholders are filled with samples and with the other
        pattern's literal words, in both directions.
        """
        for ours, theirs in ((a, b), (b, a)):
            for text in ours.example_texts(theirs.literals):
                if theirs.match(text) is not None:
                    return True
        return False

    def _publish(self, event: Any) -> None:
        if self.event_publisher is not None:
            self.event_publisher(event)
