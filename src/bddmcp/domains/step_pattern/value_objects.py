"""Step Pattern Value Objects.

Immutable building blocks of a compiled step pattern. Equality is
structural, so two patterns compiled from the same template compare
equal.
"""
from __future__ import annotations

import enum
import itertools
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union


class PlaceholderType(str, enum.Enum):
    """The closed set of placeholder types a template may use.

    Each type owns the regular expression fragment it captures and the
    conversion from captured text to a Python value.
    """
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    WORD = "word"

    @property
    def regex(self) -> str:
        return _PLACEHOLDER_REGEX[self]

    @property
    def sample(self) -> str:
        """A canonical literal that this placeholder captures."""
        return _PLACEHOLDER_SAMPLE[self]

    def convert(self, raw: str) -> Any:
        """Convert captured text to a typed value.

        Raises:
            ValueError: If the captured text cannot be parsed.
        """
        if self is PlaceholderType.INT:
            return int(raw)
        if self is PlaceholderType.FLOAT:
            return float(raw)
        if self is PlaceholderType.STRING:
            return raw[1:-1]
        return raw

    def render(self, value: Any) -> str:
        """Format a Python value as step text this placeholder captures."""
        if self is PlaceholderType.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{{int}} expects an integer, got {value!r}")
            return str(value)
        if self is PlaceholderType.FLOAT:
            text = repr(float(value))
            if not re.fullmatch(self.regex, text):
                raise ValueError(f"{{float}} cannot render {value!r}")
            return text
        if self is PlaceholderType.STRING:
            text = str(value)
            if '"' not in text:
                return f'"{text}"'
            if "'" not in text:
                return f"'{text}'"
            raise ValueError(f"{{string}} cannot render a value with both quote kinds: {value!r}")
        text = str(value)
        if not text or re.search(r"\s", text):
            raise ValueError(f"{{word}} expects a single token, got {value!r}")
        return text

    def fills(self, tokens: Iterable[str] = ()) -> Tuple[str, ...]:
        """The sample plus every token this placeholder can capture.

        ``{string}`` placeholders capture a token in double quotes.
        """
        found = [self.sample]
        for token in tokens:
            candidate = f'"{token}"' if self is PlaceholderType.STRING else token
            if candidate in found or not re.fullmatch(self.regex, candidate):
                continue
            try:
                self.convert(candidate)
            except ValueError:
                continue
            found.append(candidate)
        return tuple(found)

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


_PLACEHOLDER_REGEX = {
    PlaceholderType.STRING: r"\"[^\"]*\"|'[^']*'",
    PlaceholderType.INT: r"[-+]?\d+",
    PlaceholderType.FLOAT: r"[-+]?(?:\d+\.?\d*|\.\d+)",
    PlaceholderType.WORD: r"[^\s]+",
}

_PLACEHOLDER_SAMPLE = {
    PlaceholderType.STRING: '"sample"',
    PlaceholderType.INT: "1",
    PlaceholderType.FLOAT: "1.5",
    PlaceholderType.WORD: "sample",
}


@dataclass(frozen=True)
class LiteralSegment:
    """Literal text that must appear verbatim in the step."""
    text: str

    def to_dict(self):
        return {"kind": "literal", "text": self.text}


@dataclass(frozen=True)
class PlaceholderSegment:
    """A typed placeholder such as ``{int}``."""
    type: PlaceholderType

    def to_dict(self):
        return {"kind": "placeholder", "type": self.type.value}


Segment = Union[LiteralSegment, PlaceholderSegment]


@dataclass(frozen=True)
class TypedValue:
    """A value extracted from step text by a placeholder.

    Attributes:
        type: The placeholder type that captured it.
        value: The converted Python value.
        raw: The exact text captured from the step.
    """
    type: PlaceholderType
    value: Any
    raw: str

    def to_dict(self):
        return {"type": self.type.value, "value": self.value, "raw": self.raw}


@dataclass(frozen=True)
class StepPattern:
    """A compiled, immutable step pattern.

    Attributes:
        template: The source template, e.g. ``I have {int} items``.
        segments: Ordered literal and placeholder segments.
        regex: Anchored regular expression with one group per placeholder.
    """
    template: str
    segments: Tuple[Segment, ...]
    regex: "re.Pattern[str]" = field(compare=False, repr=False)

    @property
    def placeholder_types(self) -> Tuple[PlaceholderType, ...]:
        return tuple(
            s.type for s in self.segments if isinstance(s, PlaceholderSegment)
        )

    @property
    def signature(self) -> Tuple[str, ...]:
        """Canonical form: escaped-brace spelling differences removed."""
        return tuple(
            f"L:{s.text}" if isinstance(s, LiteralSegment) else f"P:{s.type.value}"
            for s in self.segments
        )

    def match(self, text: str) -> Optional[Tuple[TypedValue, ...]]:
        """Match the entire text; see ``PatternCompiler.match``."""
        m = self.regex.fullmatch(text)
        if m is None:
            return None
        values = []
        for placeholder_type, raw in zip(self.placeholder_types, m.groups()):
            try:
                value = placeholder_type.convert(raw)
            except ValueError:
                return None
            values.append(TypedValue(type=placeholder_type, value=value, raw=raw))
        return tuple(values)

    def render(self, values: Sequence[Any]) -> str:
        """Substitute concrete values for the placeholders.

        Raises:
            ValueError: On a value count mismatch or an unrenderable value.
        """
        types = self.placeholder_types
        if len(values) != len(types):
            raise ValueError(
                f"Pattern {self.template!r} takes {len(types)} values, got {len(values)}"
            )
        parts = []
        remaining = iter(values)
        for segment in self.segments:
            if isinstance(segment, LiteralSegment):
                parts.append(segment.text)
            else:
                parts.append(segment.type.render(next(remaining)))
        return "".join(parts)

    def sample_text(self) -> str:
        """Step text built from each placeholder's canonical sample."""
        return "".join(
            s.text if isinstance(s, LiteralSegment) else s.type.sample
            for s in self.segments
        )

    @property
    def literals(self) -> Tuple[str, ...]:
        return tuple(s.text for s in self.segments if isinstance(s, LiteralSegment))

    def example_texts(self, vocabulary: Iterable[str] = (), limit: int = 256) -> List[str]:
        """Step texts this pattern matches, built from ``vocabulary``.

        Each placeholder is filled with its sample or with any word or
        phrase of the vocabulary it can capture. The first entry is
        always ``sample_text()``. At most ``limit`` texts are built.
        """
        tokens: List[str] = []
        for phrase in vocabulary:
            for token in (phrase.strip(), *phrase.split()):
                if token and token not in tokens:
                    tokens.append(token)
        choices = [
            (s.text,) if isinstance(s, LiteralSegment) else s.type.fills(tokens)
            for s in self.segments
        ]
        return ["".join(parts) for parts in itertools.islice(itertools.product(*choices), limit)]

    def __str__(self) -> str:
        return self.template
