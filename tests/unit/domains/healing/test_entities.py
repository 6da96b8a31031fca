"""Tests for HealingHistory."""
from bddmcp.domains.healing import HealingAttempt, HealingHistory, HealingOutcome


class TestHealingHistory:
    def test_cap_per_locator_drops_oldest(self):
        history = HealingHistory(max_per_locator=2)
        for i in range(3):
            history.record_heal("#a", f"#a{i}", "alternative_locators", 0.8)
        assert [h.healed for h in history.candidates("#a")] == ["#a2", "#a1"]
        assert len(history) == 2

    def test_candidates_by_confidence_then_recency(self):
        history = HealingHistory()
        history.record_heal("#a", "#low", "force_click", 0.5)
        history.record_heal("#a", "#old-high", "scroll_into_view", 0.85)
        history.record_heal("#a", "#new-high", "scroll_into_view", 0.85)
        assert [h.healed for h in history.candidates("#a")] == ["#new-high", "#old-high", "#low"]

    def test_unknown_locator(self):
        assert HealingHistory().candidates("#nope") == []
        assert HealingHistory().candidates(None) == []

    def test_statistics(self):
        history = HealingHistory()
        history.record_outcome(HealingOutcome(success=True, attempts=(
            HealingAttempt("scroll_into_view", False, 0.0, 3),
            HealingAttempt("wait_for_visible", True, 0.75, 12),
        )))
        history.record_outcome(HealingOutcome(success=False, attempts=(
            HealingAttempt("scroll_into_view", False, 0.0, 2),
        )))
        stats = history.statistics()
        assert stats["total_heals"] == 2
        assert stats["success_rate"] == 0.5
        assert stats["strategies"]["scroll_into_view"] == {"attempted": 2, "succeeded": 0}
        assert stats["strategies"]["wait_for_visible"] == {"attempted": 1, "succeeded": 1}

    def test_clear(self):
        history = HealingHistory()
        history.record_heal("#a", "#b", "x", 0.9)
        history.clear()
        assert len(history) == 0
        assert history.statistics()["total_heals"] == 0
