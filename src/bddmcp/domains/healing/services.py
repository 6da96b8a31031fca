"""Healing Domain Services.

The browser is reached only through the UiDriver protocol, which a UI
step library implements over its automation tool and attaches to the
failure (``ElementNotFoundError.driver``) or to the step context.
"""
from __future__ import annotations

import re
from typing import List, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class UiDriver(Protocol):
    """Anti-corruption layer over a browser automation tool."""

    async def count(self, locator: str) -> int:
        """Number of elements matching the locator."""
        ...

    async def is_visible(self, locator: str) -> bool:
        ...

    async def scroll_into_view(self, locator: str) -> None:
        ...

    async def wait_for_visible(self, locator: str, timeout_ms: int) -> bool:
        ...

    async def find_overlays(self) -> List[str]:
        """Locators of elements covering the page (backdrops, banners)."""
        ...

    async def remove_element(self, locator: str) -> None:
        ...

    async def find_open_dialogs(self) -> List[str]:
        ...

    async def close_dialog(self, locator: str) -> bool:
        ...

    async def find_similar(self, locator: str) -> List[Tuple[str, float]]:
        """Visually similar candidates with a similarity score in [0, 1]."""
        ...

    async def force_click(self, locator: str) -> None:
        """Click without visibility or actionability checks."""
        ...


_DESCRIPTOR_PATTERNS: List[Tuple["re.Pattern[str]", bool]] = [
    (re.compile(r"text[=:]?\s*[\"']([^\"']+)[\"']", re.IGNORECASE), False),
    (re.compile(r":has-text\([\"']([^\"']+)[\"']\)", re.IGNORECASE), False),
    (re.compile(r"\[aria-label=[\"']([^\"']+)[\"']\]", re.IGNORECASE), False),
    (re.compile(r"\[placeholder=[\"']([^\"']+)[\"']\]", re.IGNORECASE), False),
    (re.compile(r"\[title=[\"']([^\"']+)[\"']\]", re.IGNORECASE), False),
    (re.compile(r"\[name=[\"']([^\"']+)[\"']\]", re.IGNORECASE), False),
    (re.compile(r"^#([\w-]+)$"), True),
    (re.compile(r"^\.([\w-]+)$"), True),
    (re.compile(r"\[data-(?:testid|test-id|cy)=[\"']([^\"']+)[\"']\]", re.IGNORECASE), True),
]


def describe_locator(locator: Optional[str]) -> Optional[str]:
    """Human-readable descriptor hidden in a locator.

    Examples:
        >>> describe_locator('button:has-text("Sign in")')
        'Sign in'
        >>> describe_locator("#submit-order")
        'submit order'
    """
    if not locator:
        return None
    for pattern, humanize in _DESCRIPTOR_PATTERNS:
        m = pattern.search(locator)
        if m:
            value = m.group(1)
            return re.sub(r"[-_]", " ", value) if humanize else value
    return None


def derive_alternatives(locator: Optional[str]) -> List[str]:
    """Alternative locators built from a locator's descriptor."""
    descriptor = describe_locator(locator)
    if not descriptor:
        return []
    candidates = [
        f'text="{descriptor}"',
        f'[aria-label="{descriptor}"]',
        f'[placeholder="{descriptor}"]',
        f'[title="{descriptor}"]',
    ]
    return [c for c in candidates if c != locator]
