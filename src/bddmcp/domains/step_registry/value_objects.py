"""Step Registry Value Objects."""
from __future__ import annotations

import enum
import inspect
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple


class KeywordClass(str, enum.Enum):
    """Gherkin keyword a step was declared with.

    Metadata only: it is reported to IDE tooling and diagnostics but
    never participates in matching.
    """
    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"
    GENERIC = "Step"


class StepGroup(str, enum.Enum):
    """Step library group used by selective step loading.

    COMMON steps are always loaded. The others load only when the
    corresponding module is required.
    """
    COMMON = "common"
    UI = "ui"
    API = "api"
    DATABASE = "database"
    SOAP = "soap"


_KEYWORD_PREFIX = re.compile(r"^\s*(Given|When|Then|And|But|\*)\s+", re.IGNORECASE)
_KEYWORD_LOOKUP = {k.value.lower(): k for k in KeywordClass}


def split_keyword(line: str) -> Tuple[Optional[KeywordClass], str]:
    """Split a leading Gherkin keyword from a step line.

    Examples:
        >>> split_keyword("Given I open the login page")
        (<KeywordClass.GIVEN: 'Given'>, 'I open the login page')
        >>> split_keyword("I open the login page")
        (None, 'I open the login page')
    """
    m = _KEYWORD_PREFIX.match(line)
    if m is None:
        return None, line.strip()
    keyword = _KEYWORD_LOOKUP.get(m.group(1).lower(), KeywordClass.GENERIC)
    return keyword, line[m.end():].strip()


@dataclass(frozen=True)
class SourceLocation:
    """Where a step definition was declared, for diagnostics."""
    file: str
    line: int
    function: str = ""

    @classmethod
    def from_callable(cls, func: Callable[..., Any]) -> Optional["SourceLocation"]:
        """Best-effort location of a handler; None for builtins and partials."""
        target = inspect.unwrap(func)
        code = getattr(target, "__code__", None)
        if code is None:
            return None
        return cls(
            file=code.co_filename,
            line=code.co_firstlineno,
            function=getattr(target, "__qualname__", code.co_name),
        )

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"

    def to_dict(self):
        return {"file": self.file, "line": self.line, "function": self.function}
