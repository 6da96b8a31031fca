"""Detection vocabulary: tag table and step text patterns.

The same pattern sets drive scenario-level detection and the per-step
UI classification used by the execution dispatcher.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, FrozenSet, Iterable, List, Tuple, Union

from .value_objects import Module, normalize_tag

logger = logging.getLogger(__name__)

TAG_TABLE: Dict[str, Module] = {
    "ui": Module.UI,
    "browser": Module.UI,
    "web": Module.UI,
    "api": Module.API,
    "rest": Module.API,
    "http": Module.API,
    "database": Module.DATABASE,
    "db": Module.DATABASE,
    "sql": Module.DATABASE,
    "soap": Module.SOAP,
}

# Names accepted in an explicit module list.
MODULE_ALIASES: Dict[str, Module] = {**TAG_TABLE, "wsdl": Module.SOAP}

_SUBJECT = r"\b(?:I|user|users|we|they|he|she)\s+"


def _compile(*patterns: str) -> Tuple["re.Pattern[str]", ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


STEP_PATTERNS: Dict[Module, Tuple["re.Pattern[str]", ...]] = {
    Module.UI: _compile(
        # Navigation
        _SUBJECT + r"navigate",
        _SUBJECT + r"(?:go|goes)\s+to",
        _SUBJECT + r"(?:am|is|are)\s+on\s+.*page",
        # Interaction
        _SUBJECT + r"click",
        _SUBJECT + r"(?:enter|type|input)",
        _SUBJECT + r"select",
        _SUBJECT + r"(?:wait|scroll|hover|press)",
        _SUBJECT + r"(?:upload|download)",
        # Verification
        _SUBJECT + r"should\s+(?:see|not see)",
        _SUBJECT + r"should\s+(?:still be|NOT be)\s+logged in",
        # Element and browser vocabulary
        r"(?:switch|close|open).*browser",
        r"\bthe\s+(?:page|element|button|link|input|dropdown|checkbox|radio|tab|window)s?\b",
        r"\b(?:browser|webpage|current\s+page)\b",
    ),
    Module.API: _compile(
        _SUBJECT + r"send.*(?:GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\s+request",
        _SUBJECT + r"(?:call|invoke).*(?:API|endpoint)",
        _SUBJECT + r"set.*(?:header|query parameter|body|authentication)",
        _SUBJECT + r"validate.*response",
        r"(?:the\s+)?response\s+(?:status|code|body)",
        r"(?:the\s+)?(?:JSON|XML)\s+response",
        r"status\s+code\s+should",
        r"\b(?:API|REST|HTTP|endpoint)\b",
        r"request\s+to\s+[/\"']",
    ),
    Module.DATABASE: _compile(
        _SUBJECT + r"connect.*(?:to\s+)?database",
        _SUBJECT + r"(?:disconnect|close).*database",
        _SUBJECT + r"(?:execute|run).*query",
        _SUBJECT + r"execute.*stored\s+procedure",
        _SUBJECT + r"(?:begin|start).*transaction",
        _SUBJECT + r"(?:commit|rollback).*transaction",
        r"\b(?:SELECT|INSERT|UPDATE|DELETE|CREATE|DROP|ALTER|TRUNCATE)\b.*\b(?:FROM|INTO|TABLE|DATABASE)\b",
        r"\b(?:SQL|database|query\s+result|stored\s+procedure)\b",
        # Whole words only: "editable", "acceptable" and "jquery" are UI text
        r"\b(?:database|table|query)\b",
    ),
    Module.SOAP: _compile(
        _SUBJECT + r"send.*SOAP",
        _SUBJECT + r"(?:call|invoke).*(?:web\s+service|SOAP\s+service)",
        r"\b(?:SOAP|WSDL|web\s+service)\b",
    ),
}


def classify_step(step_text: str) -> FrozenSet[Module]:
    """Every module whose pattern set matches the step text."""
    return frozenset(
        module
        for module, patterns in STEP_PATTERNS.items()
        if any(p.search(step_text) for p in patterns)
    )


def is_ui_step(step_text: str) -> bool:
    """True when the step carries a UI signal and no other module signal.

    API, database and SOAP vocabulary take precedence, so a step such as
    "I send a GET request to the page endpoint" is not UI-classified.
    """
    signals = classify_step(step_text)
    return signals == frozenset({Module.UI})


def parse_module_list(value: Union[str, Iterable[str]]) -> Tuple[Module, ...]:
    """Parse an explicit module list such as ``"ui, api"``.

    Accepts every tag-vocabulary name plus ``wsdl``. Unknown names are
    logged and ignored; duplicates collapse.
    """
    names = value.split(",") if isinstance(value, str) else list(value)
    modules: List[Module] = []
    for name in names:
        key = normalize_tag(name)
        if not key:
            continue
        module = MODULE_ALIASES.get(key)
        if module is None:
            logger.warning(
                "Unknown module in module list: %r. Valid: ui, api, database, soap", name
            )
            continue
        if module not in modules:
            modules.append(module)
    return tuple(modules)
