"""
Tests for the man-advantage tracker.
"""

from ecorating.core.constants import Side
from ecorating.domains.advantage import AdvantageTracker


class TestRecordKill:
    """Tests for opening slots and collecting beneficiaries."""

    def test_first_kill_has_no_beneficiaries(self):
        """Nobody has created an advantage yet."""
        tracker = AdvantageTracker()
        assert tracker.record_kill("a", Side.T) == []
        assert [s.player_id for s in tracker.slots(Side.T)] == ["a"]

    def test_teammate_with_live_slot_benefits(self):
        """A live slot owner benefits from a teammate's later kill."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        assert tracker.record_kill("b", Side.T) == ["a"]

    def test_killer_never_benefits_from_own_kill(self):
        """The killer's own slots are excluded."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        assert tracker.record_kill("a", Side.T) == []

    def test_beneficiaries_distinct_in_creation_order(self):
        """Owners appear once each, oldest first."""
        tracker = AdvantageTracker()
        tracker.record_kill("b", Side.CT)
        tracker.record_kill("a", Side.CT)
        tracker.record_kill("b", Side.CT)
        assert tracker.record_kill("c", Side.CT) == ["b", "a"]

    def test_round_ending_kill_opens_no_slot(self):
        """open_slot=False still returns beneficiaries but adds nothing."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        assert tracker.record_kill("b", Side.T, open_slot=False) == ["a"]
        assert len(tracker.slots(Side.T)) == 1

    def test_sides_are_independent(self):
        """Slots on one side never benefit the other."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        assert tracker.record_kill("x", Side.CT) == []


class TestRecordDeath:
    """Tests for slot consumption."""

    def test_death_consumes_oldest_slot(self):
        """FIFO: the oldest slot on the victim's side goes first."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        tracker.record_kill("b", Side.T)
        tracker.record_death("c", Side.T)
        assert [s.player_id for s in tracker.slots(Side.T)] == ["b"]

    def test_death_removes_all_victim_slots(self):
        """A dead player keeps no slot."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        tracker.record_kill("b", Side.T)
        tracker.record_kill("b", Side.T)
        tracker.record_kill("c", Side.T)
        tracker.record_death("b", Side.T)
        # Oldest ("a") consumed, then both of b's slots dropped
        assert [s.player_id for s in tracker.slots(Side.T)] == ["c"]

    def test_death_on_empty_side(self):
        """No slot to consume is not an error."""
        tracker = AdvantageTracker()
        tracker.record_death("a", Side.CT)
        assert tracker.slots(Side.CT) == ()

    def test_reset_clears_both_sides(self):
        """Round start clears every slot."""
        tracker = AdvantageTracker()
        tracker.record_kill("a", Side.T)
        tracker.record_kill("x", Side.CT)
        tracker.reset()
        assert tracker.slots(Side.T) == ()
        assert tracker.slots(Side.CT) == ()
