"""Built-in healing strategies.

Every strategy is stateless and works only through the UiDriver carried
by the failure context. A strategy whose precondition is absent (no
overlay, no dialog, no candidate) returns a failed result without
touching the page.
"""
from __future__ import annotations

import logging
from typing import List

from .services import derive_alternatives
from .value_objects import FailureContext, HealingStrategy, StrategyResult

logger = logging.getLogger(__name__)

PATTERN_MATCH_MIN_CONFIDENCE = 0.6
VISUAL_MATCH_MIN_SCORE = 0.7
VISIBILITY_WAIT_MS = 5000


def _has_target(context: FailureContext) -> bool:
    return context.has_target


# ---- alternative_locators (10) ----

def _alternatives_applicable(context: FailureContext) -> bool:
    return context.driver is not None and bool(
        context.alternatives or derive_alternatives(context.locator)
    )


async def _try_alternatives(context: FailureContext) -> StrategyResult:
    driver = context.driver
    candidates: List[str] = list(context.alternatives)
    for derived in derive_alternatives(context.locator):
        if derived not in candidates:
            candidates.append(derived)
    for candidate in candidates:
        if candidate == context.locator:
            continue
        if await driver.count(candidate) > 0:
            return StrategyResult.healed(candidate, detail=f"matched {candidate}")
    return StrategyResult.failed(f"none of {len(candidates)} alternatives matched")


# ---- scroll_into_view (9) ----

async def _scroll_into_view(context: FailureContext) -> StrategyResult:
    driver = context.driver
    if await driver.count(context.locator) == 0:
        return StrategyResult.failed("element not in DOM")
    await driver.scroll_into_view(context.locator)
    if await driver.is_visible(context.locator):
        return StrategyResult.healed(context.locator)
    return StrategyResult.failed("still not visible after scrolling")


# ---- wait_for_visible (8) ----

async def _wait_for_visible(context: FailureContext) -> StrategyResult:
    if await context.driver.wait_for_visible(context.locator, VISIBILITY_WAIT_MS):
        return StrategyResult.healed(context.locator)
    return StrategyResult.failed(f"not visible within {VISIBILITY_WAIT_MS}ms")


# ---- remove_overlays (7) ----

async def _remove_overlays(context: FailureContext) -> StrategyResult:
    driver = context.driver
    overlays = await driver.find_overlays()
    if not overlays:
        return StrategyResult.failed("no overlay present")
    for overlay in overlays:
        await driver.remove_element(overlay)
    if await driver.is_visible(context.locator):
        return StrategyResult.healed(context.locator, detail=f"removed {len(overlays)} overlays")
    return StrategyResult.failed("element hidden after removing overlays")


# ---- close_modal (6) ----

async def _close_modal(context: FailureContext) -> StrategyResult:
    driver = context.driver
    dialogs = await driver.find_open_dialogs()
    if not dialogs:
        return StrategyResult.failed("no open dialog")
    closed = 0
    for dialog in dialogs:
        if await driver.close_dialog(dialog):
            closed += 1
    if closed and await driver.is_visible(context.locator):
        return StrategyResult.healed(context.locator, detail=f"closed {closed} dialogs")
    return StrategyResult.failed("element hidden after dismissing dialogs")


# ---- pattern_based_search (5) ----

def _history_applicable(context: FailureContext) -> bool:
    return (
        context.has_target
        and context.history is not None
        and bool(context.history.candidates(context.locator))
    )


async def _search_history(context: FailureContext) -> StrategyResult:
    for past in context.history.candidates(context.locator):
        if past.confidence <= PATTERN_MATCH_MIN_CONFIDENCE:
            break
        if await context.driver.count(past.healed) > 0:
            return StrategyResult.healed(
                past.healed, confidence=past.confidence,
                detail=f"previously healed by {past.strategy_name}",
            )
    return StrategyResult.failed("no remembered locator matched")


# ---- visual_similarity (4) ----

async def _visual_similarity(context: FailureContext) -> StrategyResult:
    best_locator, best_score = None, 0.0
    for candidate, score in await context.driver.find_similar(context.locator):
        if score > best_score and score > VISUAL_MATCH_MIN_SCORE:
            best_locator, best_score = candidate, score
    if best_locator is None:
        return StrategyResult.failed("no similar element above threshold")
    return StrategyResult.healed(best_locator, confidence=best_score)


# ---- force_click (1) ----

async def _force_click(context: FailureContext) -> StrategyResult:
    await context.driver.force_click(context.locator)
    return StrategyResult.healed(context.locator, detail="forced interaction")


def default_strategies() -> List[HealingStrategy]:
    """The built-in catalog in priority order."""
    return [
        HealingStrategy(
            name="alternative_locators", priority=10, confidence=0.8,
            attempt=_try_alternatives, applicability=_alternatives_applicable,
            description="Substitute a supplied or derived alternative locator",
        ),
        HealingStrategy(
            name="scroll_into_view", priority=9, confidence=0.85,
            attempt=_scroll_into_view, applicability=_has_target,
            description="Scroll the element into the viewport",
        ),
        HealingStrategy(
            name="wait_for_visible", priority=8, confidence=0.75,
            attempt=_wait_for_visible, applicability=_has_target,
            description="Wait for the element to become visible",
        ),
        HealingStrategy(
            name="remove_overlays", priority=7, confidence=0.7,
            attempt=_remove_overlays, applicability=_has_target,
            description="Remove overlays covering the element",
        ),
        HealingStrategy(
            name="close_modal", priority=6, confidence=0.8,
            attempt=_close_modal, applicability=_has_target,
            description="Dismiss open modal dialogs",
        ),
        HealingStrategy(
            name="pattern_based_search", priority=5, confidence=0.7,
            attempt=_search_history, applicability=_history_applicable,
            description="Reuse a locator that healed this target before",
        ),
        HealingStrategy(
            name="visual_similarity", priority=4, confidence=0.7,
            attempt=_visual_similarity, applicability=_has_target,
            description="Pick the most visually similar element",
        ),
        HealingStrategy(
            name="force_click", priority=1, confidence=0.5,
            attempt=_force_click, applicability=_has_target,
            description="Interact while bypassing actionability checks",
        ),
    ]
