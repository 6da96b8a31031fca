"""Tests for the HealingEngine aggregate."""
import asyncio
import time

import pytest

from bddmcp.domains.healing import (
    FailureContext, HealingAttempted, HealingEngine, HealingExhausted,
    HealingStrategy, HealingSucceeded, StrategyResult,
)


# ── Helpers ──────────────────────────────────────────────────────────


def _strategy(name, priority, result=None, raises=None, sleep=None, confidence=0.9,
              applicable=True, log=None):
    async def attempt(context):
        if log is not None:
            log.append(name)
        if sleep is not None:
            await asyncio.sleep(sleep)
        if raises is not None:
            raise raises
        return result if result is not None else StrategyResult.failed("nope")

    return HealingStrategy(
        name=name, priority=priority, attempt=attempt,
        applicability=lambda ctx: applicable, confidence=confidence,
    )


def _context(locator="#submit"):
    return FailureContext(step_text="I click the submit button", locator=locator)


def _engine(*strategies, **kwargs):
    engine = HealingEngine(**kwargs)
    for strategy in strategies:
        engine.register_strategy(strategy)
    return engine


# ── Ordering ─────────────────────────────────────────────────────────


class TestOrdering:
    @pytest.mark.asyncio
    async def test_first_success_stops_the_chain(self):
        log = []
        engine = _engine(
            _strategy("C", 1, result=StrategyResult.healed("#c"), log=log),
            _strategy("A", 10, log=log),
            _strategy("B", 9, result=StrategyResult.healed("#b"), log=log),
        )
        outcome = await engine.heal(_context())
        assert outcome.success
        assert outcome.strategy_name == "B"
        assert outcome.healed_locator == "#b"
        assert outcome.attempted_strategies == ["A", "B"]
        assert log == ["A", "B"]

    def test_descending_priority_with_stable_ties(self):
        engine = _engine(
            _strategy("low", 1), _strategy("tie-1", 5), _strategy("high", 9), _strategy("tie-2", 5),
        )
        assert [s.name for s in engine.strategies] == ["high", "tie-1", "tie-2", "low"]

    @pytest.mark.asyncio
    async def test_inapplicable_strategies_are_skipped(self):
        engine = _engine(
            _strategy("skip", 10, applicable=False),
            _strategy("run", 5, result=StrategyResult.healed("#x")),
        )
        outcome = await engine.heal(_context())
        assert outcome.attempted_strategies == ["run"]

    @pytest.mark.asyncio
    async def test_raising_applicability_counts_as_inapplicable(self):
        def broken(ctx):
            raise RuntimeError("boom")

        async def attempt(ctx):
            return StrategyResult.healed("#x")

        engine = _engine(
            HealingStrategy(name="broken", priority=10, attempt=attempt, applicability=broken),
            _strategy("ok", 1, result=StrategyResult.healed("#ok")),
        )
        outcome = await engine.heal(_context())
        assert outcome.strategy_name == "ok"
        assert outcome.attempted_strategies == ["ok"]


# ── Failure handling ─────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_exception_is_a_failed_attempt(self):
        engine = _engine(
            _strategy("bad", 10, raises=ValueError("selector engine crashed")),
            _strategy("good", 5, result=StrategyResult.healed("#g")),
        )
        outcome = await engine.heal(_context())
        assert outcome.success
        bad = outcome.attempts[0]
        assert not bad.success
        assert "ValueError" in bad.error

    @pytest.mark.asyncio
    async def test_strategy_raising_timeout_error_is_not_an_attempt_timeout(self):
        log = []
        engine = _engine(
            _strategy("flaky", 10, raises=TimeoutError("driver call timed out"), log=log),
            _strategy("next", 5, result=StrategyResult.healed("#n"), log=log),
            attempt_timeout_ms=None, time_budget_ms=60000,
        )
        outcome = await engine.heal(_context())
        assert outcome.success
        assert not outcome.exhausted
        assert log == ["flaky", "next"]
        assert outcome.attempts[0].error == "TimeoutError: driver call timed out"

    @pytest.mark.asyncio
    async def test_non_result_return_is_a_failed_attempt(self):
        engine = _engine(
            _strategy("sloppy", 10, result="yes"),
            _strategy("good", 5, result=StrategyResult.healed("#g")),
        )
        outcome = await engine.heal(_context())
        assert outcome.success
        assert outcome.strategy_name == "good"
        sloppy = outcome.attempts[0]
        assert not sloppy.success
        assert sloppy.error.startswith("TypeError: sloppy returned str")

    @pytest.mark.asyncio
    async def test_per_attempt_timeout(self):
        engine = _engine(
            _strategy("slow", 10, sleep=5, result=StrategyResult.healed("#s")),
            _strategy("fast", 5, result=StrategyResult.healed("#f")),
            attempt_timeout_ms=50, time_budget_ms=None,
        )
        start = time.monotonic()
        outcome = await engine.heal(_context())
        assert time.monotonic() - start < 2
        assert outcome.strategy_name == "fast"
        assert "timed out" in outcome.attempts[0].error

    @pytest.mark.asyncio
    async def test_time_budget_cancels_and_exhausts(self):
        log = []
        engine = _engine(
            _strategy("slow", 10, sleep=5, log=log),
            _strategy("never", 5, result=StrategyResult.healed("#n"), log=log),
            attempt_timeout_ms=None, time_budget_ms=80,
        )
        outcome = await engine.heal(_context())
        assert not outcome.success
        assert outcome.exhausted
        assert log == ["slow"]
        assert "budget" in outcome.attempts[0].error

    @pytest.mark.asyncio
    async def test_max_attempts(self):
        log = []
        engine = _engine(
            *[_strategy(f"s{i}", 10 - i, log=log) for i in range(5)],
            max_attempts=2,
        )
        outcome = await engine.heal(_context())
        assert not outcome.success
        assert outcome.exhausted
        assert len(outcome.attempts) == 2
        assert log == ["s0", "s1"]

    @pytest.mark.asyncio
    async def test_chain_exhausted_naturally_is_not_budget_exhaustion(self):
        engine = _engine(_strategy("only", 1))
        outcome = await engine.heal(_context())
        assert not outcome.success
        assert not outcome.exhausted

    @pytest.mark.asyncio
    async def test_low_confidence_success_is_a_failed_attempt(self):
        engine = _engine(
            _strategy("shaky", 10, result=StrategyResult.healed("#shaky", confidence=0.3)),
            _strategy("solid", 5, result=StrategyResult.healed("#solid")),
            confidence_threshold=0.5,
        )
        outcome = await engine.heal(_context())
        assert outcome.strategy_name == "solid"
        shaky = outcome.attempts[0]
        assert not shaky.success
        assert shaky.confidence == pytest.approx(0.3)
        assert "below threshold" in shaky.error

    @pytest.mark.asyncio
    async def test_nominal_confidence_used_when_unreported(self):
        engine = _engine(
            _strategy("nominal", 10, result=StrategyResult.healed("#n"), confidence=0.4),
            confidence_threshold=0.5,
        )
        outcome = await engine.heal(_context())
        assert not outcome.success

    @pytest.mark.asyncio
    async def test_external_cancellation_propagates(self):
        engine = _engine(_strategy("slow", 10, sleep=5), attempt_timeout_ms=None, time_budget_ms=None)
        task = asyncio.ensure_future(engine.heal(_context()))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ── Lifecycle ────────────────────────────────────────────────────────


class TestLifecycle:
    def test_defaults_are_sealed(self):
        engine = HealingEngine.with_defaults()
        assert engine.strategy_count == 8
        with pytest.raises(RuntimeError):
            engine.register_strategy(_strategy("extra", 3))

    def test_duplicate_name_rejected(self):
        engine = _engine(_strategy("dup", 3))
        with pytest.raises(ValueError, match="Duplicate"):
            engine.register_strategy(_strategy("dup", 7))

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            HealingEngine(confidence_threshold=1.5)

    def test_clear_unseals(self):
        engine = HealingEngine.with_defaults()
        engine.clear()
        assert engine.strategy_count == 0
        engine.register_strategy(_strategy("again", 1))

    def test_builtin_catalog_order(self):
        names = [s.name for s in HealingEngine.with_defaults().strategies]
        assert names == [
            "alternative_locators", "scroll_into_view", "wait_for_visible",
            "remove_overlays", "close_modal", "pattern_based_search",
            "visual_similarity", "force_click",
        ]


# ── Events ───────────────────────────────────────────────────────────


class TestEvents:
    @pytest.mark.asyncio
    async def test_success_events(self):
        events = []
        engine = _engine(
            _strategy("A", 10), _strategy("B", 5, result=StrategyResult.healed("#b")),
            event_publisher=events.append,
        )
        await engine.heal(_context())
        assert [type(e) for e in events] == [HealingAttempted, HealingAttempted, HealingSucceeded]
        assert events[-1].to_dict()["healed_locator"] == "#b"

    @pytest.mark.asyncio
    async def test_exhausted_event(self):
        events = []
        engine = _engine(_strategy("A", 10), event_publisher=events.append)
        await engine.heal(_context())
        assert isinstance(events[-1], HealingExhausted)
        assert events[-1].attempted == ["A"]
