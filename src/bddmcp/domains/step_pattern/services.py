"""Pattern Compiler service.

Turns templates such as ``I enter {string} into the {word} field`` into
``StepPattern`` objects. Compilation is cached per template, so every
definition sharing a template reuses one compiled pattern.
"""
from __future__ import annotations

import functools
import logging
import re
from typing import List, Optional, Tuple

from bddmcp.domains.shared.errors import PatternError

from .value_objects import (
    LiteralSegment, PlaceholderSegment, PlaceholderType, Segment,
    StepPattern, TypedValue,
)

logger = logging.getLogger(__name__)

_ESCAPES = {"{": "{", "}": "}"}


def _parse(template: str) -> Tuple[Segment, ...]:
    segments: List[Segment] = []
    literal: List[str] = []
    i = 0
    n = len(template)

    def flush() -> None:
        if literal:
            segments.append(LiteralSegment("".join(literal)))
            literal.clear()

    while i < n:
        ch = template[i]
        if ch == "\\" and i + 1 < n and template[i + 1] in _ESCAPES:
            literal.append(_ESCAPES[template[i + 1]])
            i += 2
            continue
        if ch == "}":
            raise PatternError(template, "unescaped '}'", i)
        if ch == "{":
            end = template.find("}", i + 1)
            if end == -1:
                raise PatternError(template, "unclosed '{'", i)
            name = template[i + 1:end]
            if "{" in name:
                raise PatternError(template, "nested '{'", i)
            try:
                placeholder_type = PlaceholderType(name.strip())
            except ValueError:
                raise PatternError(
                    template,
                    f"unknown placeholder {{{name}}}; expected one of "
                    + ", ".join(f"{{{t}}}" for t in PlaceholderType.names()),
                    i,
                ) from None
            flush()
            segments.append(PlaceholderSegment(placeholder_type))
            i = end + 1
            continue
        literal.append(ch)
        i += 1
    flush()
    return tuple(segments)


def _build_regex(segments: Tuple[Segment, ...]) -> "re.Pattern[str]":
    parts = []
    for segment in segments:
        if isinstance(segment, LiteralSegment):
            parts.append(re.escape(segment.text))
        else:
            parts.append(f"({segment.type.regex})")
    return re.compile("".join(parts))


@functools.lru_cache(maxsize=None)
def _compile_cached(template: str) -> StepPattern:
    segments = _parse(template)
    logger.debug("Compiled step pattern %r into %d segments", template, len(segments))
    return StepPattern(template=template, segments=segments, regex=_build_regex(segments))


class PatternCompiler:
    """Compile templates and match step text against compiled patterns.

    Stateless apart from the process-wide compilation cache; compiled
    patterns are immutable and safe to share between workers.
    """

    def compile(self, template: str) -> StepPattern:
        """Compile a template.

        Args:
            template: Phrase with ``{string}``, ``{int}``, ``{float}`` or
                ``{word}`` placeholders. Use ``\\{`` and ``\\}`` for
                literal braces.

        Raises:
            PatternError: On an unknown placeholder name or an unescaped
                brace.
        """
        if not isinstance(template, str) or not template.strip():
            raise PatternError(str(template), "template must be a non-empty string")
        return _compile_cached(template)

    def match(self, pattern: StepPattern, text: str) -> Optional[Tuple[TypedValue, ...]]:
        """Match ``text`` against ``pattern``.

        Matching is anchored: the whole text must be consumed. Returns
        ``None`` when the text does not match, otherwise the extracted
        values in placeholder order (an empty tuple for a pattern with
        no placeholders).
        """
        return pattern.match(text)
