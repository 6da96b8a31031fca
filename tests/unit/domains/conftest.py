"""Pytest fixtures for domain tests.

These fixtures support testing the engine bounded contexts:
- Step Registry Context
- Healing Context (in-memory UiDriver)
- Execution and Worker Contexts
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from bddmcp.domains.step_registry import StepRegistry, StepSource


# =============================================================================
# Healing Domain Fixtures
# =============================================================================


class FakeUiDriver:
    """In-memory UiDriver.

    Attributes:
        present: Locators that exist in the DOM.
        visible: Locators currently visible.
        hidden_until_scrolled: Present locators that become visible on scroll.
        hidden_until_waited: Present locators that become visible on wait.
        overlays: Overlay locators covering ``blocked``.
        dialogs: Open dialog locators covering ``blocked``.
        similar: Locator -> [(candidate, score)].
    """

    def __init__(
        self,
        present: Iterable[str] = (),
        visible: Iterable[str] = (),
        hidden_until_scrolled: Iterable[str] = (),
        hidden_until_waited: Iterable[str] = (),
        overlays: Iterable[str] = (),
        dialogs: Iterable[str] = (),
        blocked: Iterable[str] = (),
        similar: Optional[Dict[str, List[Tuple[str, float]]]] = None,
    ):
        self.present = set(present)
        self.visible = set(visible)
        self.hidden_until_scrolled = set(hidden_until_scrolled)
        self.hidden_until_waited = set(hidden_until_waited)
        self.overlays = list(overlays)
        self.dialogs = list(dialogs)
        self.blocked = set(blocked)
        self.similar = dict(similar or {})
        self.calls: List[Tuple[str, ...]] = []

    def _unblock_if_clear(self) -> None:
        if not self.overlays and not self.dialogs:
            self.visible |= self.blocked
            self.blocked.clear()

    async def count(self, locator: str) -> int:
        self.calls.append(("count", locator))
        return 1 if locator in self.present else 0

    async def is_visible(self, locator: str) -> bool:
        self.calls.append(("is_visible", locator))
        return locator in self.visible

    async def scroll_into_view(self, locator: str) -> None:
        self.calls.append(("scroll_into_view", locator))
        if locator in self.hidden_until_scrolled:
            self.visible.add(locator)

    async def wait_for_visible(self, locator: str, timeout_ms: int) -> bool:
        self.calls.append(("wait_for_visible", locator))
        if locator in self.hidden_until_waited:
            self.visible.add(locator)
        return locator in self.visible

    async def find_overlays(self) -> List[str]:
        self.calls.append(("find_overlays",))
        return list(self.overlays)

    async def remove_element(self, locator: str) -> None:
        self.calls.append(("remove_element", locator))
        if locator in self.overlays:
            self.overlays.remove(locator)
        self._unblock_if_clear()

    async def find_open_dialogs(self) -> List[str]:
        self.calls.append(("find_open_dialogs",))
        return list(self.dialogs)

    async def close_dialog(self, locator: str) -> bool:
        self.calls.append(("close_dialog", locator))
        if locator in self.dialogs:
            self.dialogs.remove(locator)
            self._unblock_if_clear()
            return True
        return False

    async def find_similar(self, locator: str) -> List[Tuple[str, float]]:
        self.calls.append(("find_similar", locator))
        return list(self.similar.get(locator, []))

    async def force_click(self, locator: str) -> None:
        self.calls.append(("force_click", locator))

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)


@pytest.fixture
def fake_driver_factory():
    """Build FakeUiDriver instances with per-test state."""
    return FakeUiDriver


# =============================================================================
# Step Registry Fixtures
# =============================================================================


@pytest.fixture
def login_steps() -> StepSource:
    """A small UI step library."""
    steps = StepSource("login", group="ui")

    @steps.given("I open the {word} page")
    async def open_page(ctx, page):
        ctx["page"] = page

    @steps.when("I click the {string} button")
    async def click_button(ctx, label):
        ctx["clicked"] = ctx.locator(f'button:has-text("{label}")')

    @steps.then("I should see {int} items")
    def count_items(ctx, expected):
        ctx["expected"] = expected

    return steps


@pytest.fixture
def registry(login_steps) -> StepRegistry:
    """A registry populated from ``login_steps``."""
    registry = StepRegistry()
    login_steps.register_into(registry)
    return registry
