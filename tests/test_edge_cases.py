"""
Edge case tests for the rating engine.

Tests verify graceful handling of:
- Out-of-order events and fatal failures
- Events outside a live round
- Round restarts
- Kills of dead players, team kills and world deaths
- Lazily registered players
- Matches without any completed round
"""

import pytest

from ecorating.core.constants import Side
from ecorating.core.errors import (
    EngineStateError,
    EventOrderError,
    MalformedEventError,
    MatchProcessingError,
)
from ecorating.core.event_source import iter_events, read_events
from ecorating.core.events import Kill, PlayerHurt, RosterEntry, RoundEnd, RoundStart
from ecorating.state_machine import MatchStateMachine


def _roster():
    return (
        RosterEntry("t1", Side.T, equipment_value=4000.0),
        RosterEntry("t2", Side.T, equipment_value=4000.0),
        RosterEntry("c1", Side.CT, equipment_value=4000.0),
        RosterEntry("c2", Side.CT, equipment_value=4000.0),
    )


class TestOrdering:
    """Tests for tick ordering and failure handling."""

    def test_out_of_order_event_is_fatal(self):
        engine = MatchStateMachine(match_id="m1")
        engine.handle(RoundStart(tick=100, players=_roster()))
        with pytest.raises(MatchProcessingError) as exc_info:
            engine.handle(Kill(tick=50, attacker_id="t1", victim_id="c1"))

        error = exc_info.value
        assert isinstance(error.cause, EventOrderError)
        assert error.match_id == "m1"
        assert error.event_index == 1
        assert error.tick == 50
        assert engine.failed

    def test_failed_engine_refuses_events_and_finalize(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        with pytest.raises(MatchProcessingError):
            engine.handle(RoundEnd(tick=10, winner=Side.T))
        with pytest.raises(EngineStateError):
            engine.handle(RoundEnd(tick=200, winner=Side.T))
        with pytest.raises(EngineStateError):
            engine.finalize()

    def test_equal_ticks_are_allowed(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(Kill(tick=100, attacker_id="t1", victim_id="c1"))
        engine.handle(Kill(tick=100, attacker_id="t2", victim_id="c2"))
        engine.handle(RoundEnd(tick=100, winner=Side.T))
        assert engine.finalize().players["t2"].kills == 1

    def test_events_after_finalize_rejected(self):
        engine = MatchStateMachine()
        engine.finalize()
        with pytest.raises(EngineStateError):
            engine.handle(RoundStart(tick=0, players=_roster()))

    def test_malformed_stream_fails_match(self):
        lines = [
            '{"type": "round_start", "tick": 0, "players": []}',
            "{not json",
        ]
        engine = MatchStateMachine(match_id="broken")
        with pytest.raises(MatchProcessingError) as exc_info:
            engine.process(iter_events(lines))
        assert isinstance(exc_info.value.cause, MalformedEventError)
        assert exc_info.value.event_index == 1
        with pytest.raises(EngineStateError):
            engine.finalize()

    def test_undecodable_stream_fails_match(self, tmp_path):
        """Bytes that are not UTF-8 become a structured failure naming the match."""
        path = tmp_path / "binary.jsonl"
        path.write_bytes(b'{"type": "round_start", "tick": 0}\n\xff\xfe garbage\n')
        engine = MatchStateMachine(match_id="binary")
        with pytest.raises(MatchProcessingError) as exc_info:
            engine.process(read_events(path))
        assert isinstance(exc_info.value.cause, MalformedEventError)
        assert exc_info.value.match_id == "binary"
        assert engine.failed

    def test_missing_file_fails_match(self, tmp_path):
        engine = MatchStateMachine(match_id="gone")
        with pytest.raises(MatchProcessingError) as exc_info:
            engine.process(read_events(tmp_path / "gone.jsonl"))
        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert engine.failed


class TestOutsideRound:
    """Events outside a live round are ignored."""

    def test_warmup_kill_ignored(self):
        engine = MatchStateMachine()
        engine.handle(
            Kill(
                tick=10,
                attacker_id="t1",
                victim_id="c1",
                attacker_side=Side.T,
                victim_side=Side.CT,
            )
        )
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(RoundEnd(tick=200, winner=Side.T))
        assert engine.finalize().players["t1"].kills == 0

    def test_event_between_rounds_ignored(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(RoundEnd(tick=200, winner=Side.T))
        engine.handle(PlayerHurt(tick=250, victim_id="c1", attacker_id="t1", damage=50))
        assert engine.finalize().players["t1"].damage == 0

    def test_round_end_without_start_ignored(self):
        engine = MatchStateMachine()
        engine.handle(RoundEnd(tick=10, winner=Side.T))
        assert engine.finalize().rounds == ()


class TestRestart:
    """A round start during a live round discards the unfinished round."""

    def test_restart_discards_round(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, round_num=1, players=_roster()))
        engine.handle(Kill(tick=150, attacker_id="t1", victim_id="c1"))
        engine.handle(RoundStart(tick=200, round_num=1, players=_roster()))
        engine.handle(RoundEnd(tick=300, winner=Side.CT))
        result = engine.finalize()
        assert result.players["t1"].kills == 0
        assert result.players["c1"].deaths == 0
        assert result.players["t1"].rounds_played == 1
        assert len(result.rounds) == 1

    def test_unfinished_last_round_discarded(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(RoundEnd(tick=200, winner=Side.T))
        engine.handle(RoundStart(tick=300))
        engine.handle(Kill(tick=350, attacker_id="t1", victim_id="c1"))
        result = engine.finalize()
        assert result.players["t1"].rounds_played == 1
        assert result.players["t1"].kills == 0


class TestUnusualKills:
    """Tests for kills the engine must not double count."""

    def test_kill_of_dead_player_ignored(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(Kill(tick=150, attacker_id="t1", victim_id="c1"))
        engine.handle(Kill(tick=160, attacker_id="t2", victim_id="c1"))
        engine.handle(RoundEnd(tick=300, winner=Side.T))
        result = engine.finalize()
        assert result.players["c1"].deaths == 1
        assert result.players["t2"].kills == 0

    def test_team_kill(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(Kill(tick=150, attacker_id="t1", victim_id="t2"))
        engine.handle(RoundEnd(tick=300, winner=Side.CT))
        result = engine.finalize()
        assert result.players["t1"].team_kills == 1
        assert result.players["t1"].kills == 0
        assert result.players["t1"].eco_kill_value == 0.0
        assert result.players["t2"].deaths == 1
        assert result.players["t2"].opening_deaths == 0

    def test_world_death(self):
        """No attacker: death path only, valued as an equal-loadout death."""
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(Kill(tick=150, attacker_id=None, victim_id="c1", weapon="world"))
        engine.handle(RoundEnd(tick=300, winner=Side.T))
        c1 = engine.finalize().players["c1"]
        assert c1.deaths == 1
        assert c1.eco_death_value == pytest.approx(-1.0)
        assert c1.trade_denials == 0

    def test_suicide(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(Kill(tick=150, attacker_id="c1", victim_id="c1", weapon="hegrenade"))
        engine.handle(RoundEnd(tick=300, winner=Side.T))
        c1 = engine.finalize().players["c1"]
        assert c1.deaths == 1
        assert c1.kills == 0
        assert c1.team_kills == 0


class TestLazyRegistration:
    """Players unknown to the roster are registered on first sight."""

    def test_unknown_players_with_sides(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100))
        engine.handle(
            Kill(
                tick=150,
                attacker_id="x",
                victim_id="y",
                attacker_side=Side.T,
                victim_side=Side.CT,
                attacker_name="Xavier",
            )
        )
        engine.handle(RoundEnd(tick=300, winner=Side.T))
        result = engine.finalize()
        assert result.players["x"].kills == 1
        assert result.players["x"].name == "Xavier"
        assert result.players["y"].rounds_played == 1

    def test_unplaceable_player_ignored(self):
        """No roster entry and no side on the event: nothing to attribute."""
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        engine.handle(PlayerHurt(tick=150, victim_id="c1", attacker_id="ghost", damage=30))
        engine.handle(RoundEnd(tick=300, winner=Side.T))
        result = engine.finalize()
        assert "ghost" not in result.players


class TestZeroRounds:
    """A match with no completed round still finalizes."""

    def test_empty_match(self):
        result = MatchStateMachine(match_id="empty").finalize()
        assert result.players == {}
        assert result.total_rounds == 0
        assert result.to_dataframe().empty

    def test_players_without_rounds(self):
        engine = MatchStateMachine()
        engine.handle(RoundStart(tick=100, players=_roster()))
        record = engine.finalize().players["t1"]
        assert record.rounds_played == 0
        assert record.adr == 0.0
        assert record.kpr == 0.0
        assert record.kast == 0.0
        assert record.swing_per_round == 0.0
        assert record.rating == 0.2
        assert record.hltv_rating == 0.0
