"""
Match/Round State Engine for eco-rating

Replays one match, one event at a time, and turns every event into weighted
contributions: probability swing, eco-adjusted kill/death value, trade
credit and survival credit.

Architecture:
- Round lifecycle: PENDING -> ROUND_LIVE -> ROUND_ENDED -> (ROUND_LIVE | MATCH_ENDED)
- Round-scoped trackers (advantage slots, trade windows) reset every round start
- Round accumulators fold into match-lifetime stats exactly once, at round end
- Strict tick ordering across the whole match

Kill handling order:
    snapshot before -> remove victim -> snapshot after -> killer swing
    -> advantage slots / survival credit -> trade match -> eco values
    -> counters -> victim swing -> advantage consumption -> trade window
    -> clutch check
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from ecorating.analysis.models import (
    MatchResult,
    PlayerRecord,
    PlayerStats,
    RoundPlayerStats,
    RoundRecord,
)
from ecorating.analysis.rating import RatingComposer
from ecorating.analysis.swing import SwingAttributor
from ecorating.analysis.win_probability import RoundSnapshot, WinProbability, WinProbabilityModel
from ecorating.core.config import EngineConfig
from ecorating.core.constants import (
    AWP_WEAPONS,
    KNIFE_WEAPONS,
    PISTOL_WEAPONS,
    RIFLE_LOADOUT_VALUE,
    MatchPhase,
    Side,
    normalize_weapon,
    ticks_for_seconds,
)
from ecorating.core.errors import (
    EngineStateError,
    EventOrderError,
    MatchProcessingError,
)
from ecorating.core.event_source import read_events
from ecorating.core.events import (
    BombDefused,
    BombPlanted,
    EventCounts,
    FlashExplode,
    Kill,
    MatchEvent,
    PlayerHurt,
    Position,
    RosterEntry,
    RoundEnd,
    RoundStart,
)
from ecorating.domains.advantage import AdvantageTracker
from ecorating.domains.economy import EcoMultipliers, EconomyValuator, is_pistol_round
from ecorating.domains.trades import TradeDetector, TradeWindow

logger = logging.getLogger(__name__)


# ============================================================================
# Round State
# ============================================================================


@dataclass
class RoundState:
    """Everything that lives for exactly one round."""

    round_num: int
    start_tick: int
    players: dict[str, RoundPlayerStats] = field(default_factory=dict)
    positions: dict[str, Position] = field(default_factory=dict)
    bomb_planted: bool = False
    plant_tick: int | None = None
    bomb_defused: bool = False
    kills: int = 0
    opening_taken: bool = False
    clutch_sides: set[Side] = field(default_factory=set)
    untraded: dict[Side, int] = field(default_factory=lambda: {side: 0 for side in Side})

    def alive(self, side: Side) -> list[RoundPlayerStats]:
        return [p for p in self.players.values() if p.side == side and p.alive]

    def alive_count(self, side: Side) -> int:
        return len(self.alive(side))

    def equipment(self, side: Side) -> float:
        return sum(p.equipment_value for p in self.alive(side))


# ============================================================================
# State Machine
# ============================================================================


class MatchStateMachine:
    """
    Single-match replay engine.

    One instance owns every accumulator of one match. It is not thread-safe
    and is never shared; batch processing runs one instance per match.

    Usage:
        engine = MatchStateMachine(config, match_id="inferno-1")
        for event in events:
            engine.handle(event)
        result = engine.finalize()
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        match_id: str = "match",
        win_probability: WinProbability | None = None,
    ):
        self.config = config or EngineConfig()
        self.match_id = match_id

        match_cfg = self.config.match
        self.tick_rate = match_cfg.tick_rate
        self.early_death_ticks = ticks_for_seconds(match_cfg.early_death_seconds, self.tick_rate)
        self.exit_frag_ticks = ticks_for_seconds(match_cfg.exit_frag_seconds, self.tick_rate)

        self.economy = EconomyValuator(self.config.economy)
        self.advantage = AdvantageTracker()
        self.trades = TradeDetector.from_config(self.config.trade, self.tick_rate)
        self.model = win_probability or WinProbabilityModel(
            self.config.win_probability, self.config.match
        )
        self.swing = SwingAttributor.from_config(self.model, self.config.swing)
        self.composer = RatingComposer(self.config.rating)

        self.phase = MatchPhase.PENDING
        self.players: dict[str, PlayerStats] = {}
        self.roster: dict[str, RosterEntry] = {}
        self.round: RoundState | None = None
        self.rounds: list[RoundRecord] = []
        self.counts = EventCounts()

        self._last_tick: int | None = None
        self._event_index = 0
        self._failure: MatchProcessingError | None = None
        self._result: MatchResult | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def handle(self, event: MatchEvent) -> None:
        """Apply one event. Fatal errors are wrapped in MatchProcessingError."""
        if self._result is not None:
            raise EngineStateError(f"Match '{self.match_id}' is already finalized")
        if self._failure is not None:
            raise EngineStateError(f"Match '{self.match_id}' failed: {self._failure}")

        try:
            self._dispatch(event)
        except Exception as e:
            self._fail(e, event.tick)
        finally:
            self._event_index += 1

    def process(self, events: Iterable[MatchEvent]) -> MatchResult:
        """Replay every event of ``events`` and finalize."""
        iterator = iter(events)
        while True:
            try:
                event = next(iterator)
            except StopIteration:
                break
            except Exception as e:
                self._fail(e, None)
            self.handle(event)
        return self.finalize()

    def finalize(self) -> MatchResult:
        """Build the immutable MatchResult. Idempotent."""
        if self._result is not None:
            return self._result
        if self._failure is not None:
            raise EngineStateError(
                f"Match '{self.match_id}' failed and cannot be finalized: {self._failure}"
            )

        if self.phase == MatchPhase.ROUND_LIVE and self.round is not None:
            logger.warning(
                f"Match '{self.match_id}' ended during round {self.round.round_num}; "
                "discarding the unfinished round"
            )
            self.round = None

        records: dict[str, PlayerRecord] = {
            player_id: self.composer.rate_player(stats)
            for player_id, stats in self.players.items()
        }

        self.phase = MatchPhase.MATCH_ENDED
        self._result = MatchResult(
            match_id=self.match_id,
            rounds=tuple(self.rounds),
            players=MappingProxyType(records),
        )
        logger.info(
            f"Match '{self.match_id}' finalized: {len(self.rounds)} rounds, "
            f"{len(records)} players, {self.counts.total} events"
        )
        return self._result

    @property
    def failed(self) -> bool:
        return self._failure is not None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _fail(self, cause: Exception, tick: int | None) -> None:
        error = MatchProcessingError(self.match_id, self._event_index, tick, cause)
        self._failure = error
        logger.error(str(error))
        raise error from cause

    def _dispatch(self, event: MatchEvent) -> None:
        if self._last_tick is not None and event.tick < self._last_tick:
            raise EventOrderError(event.tick, self._last_tick, type(event).__name__)
        self._last_tick = event.tick
        self.counts.add(event)

        if isinstance(event, RoundStart):
            self._on_round_start(event)
            return

        if self.phase != MatchPhase.ROUND_LIVE or self.round is None:
            logger.debug(f"Ignoring {type(event).__name__} at tick {event.tick}: no live round")
            return

        for window in self.trades.expire(event.tick):
            self._close_untraded(window)

        if isinstance(event, RoundEnd):
            self._on_round_end(event)
        elif isinstance(event, Kill):
            self._on_kill(event)
        elif isinstance(event, PlayerHurt):
            self._on_player_hurt(event)
        elif isinstance(event, BombPlanted):
            self._on_bomb_planted(event)
        elif isinstance(event, BombDefused):
            self._on_bomb_defused(event)
        elif isinstance(event, FlashExplode):
            self._on_flash(event)
        else:
            logger.debug(f"Unhandled event type: {type(event).__name__}")

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def _register(self, player_id: str, name: str = "") -> PlayerStats:
        stats = self.players.get(player_id)
        if stats is None:
            stats = PlayerStats(player_id=player_id, name=name)
            self.players[player_id] = stats
        elif name and not stats.name:
            stats.name = name
        return stats

    def _player(
        self, player_id: str | None, side: Side | None = None, name: str = ""
    ) -> RoundPlayerStats | None:
        """Round stats of a player, registering them lazily when their side is known."""
        if not player_id or self.round is None:
            return None

        stats = self.round.players.get(player_id)
        if stats is not None:
            if name:
                self._register(player_id, name)
            return stats

        if side is None:
            entry = self.roster.get(player_id)
            side = entry.side if entry else None
        if side is None:
            logger.debug(f"Player {player_id} has no known side; event ignored for them")
            return None

        logger.debug(f"Lazily registering {player_id} on {side} in round {self.round.round_num}")
        self._register(player_id, name)
        self.roster[player_id] = RosterEntry(player_id=player_id, side=side, name=name)
        stats = RoundPlayerStats(
            player_id=player_id, side=side, health=self.config.match.max_health
        )
        self.round.players[player_id] = stats
        return stats

    def _snapshot(self, tick: int) -> RoundSnapshot:
        rnd = self.round
        assert rnd is not None
        elapsed = (tick - rnd.start_tick) / self.tick_rate
        bomb_elapsed = (tick - rnd.plant_tick) / self.tick_rate if rnd.plant_tick is not None else 0.0
        return RoundSnapshot(
            alive={side: rnd.alive_count(side) for side in Side},
            equipment={side: rnd.equipment(side) for side in Side},
            bomb_planted=rnd.bomb_planted,
            bomb_defused=rnd.bomb_defused,
            time_remaining=self.config.match.round_time_seconds - elapsed,
            bomb_time_remaining=self.config.match.bomb_timer_seconds - bomb_elapsed,
        )

    # ------------------------------------------------------------------
    # Round boundaries
    # ------------------------------------------------------------------

    def _on_round_start(self, event: RoundStart) -> None:
        if self.phase == MatchPhase.ROUND_LIVE and self.round is not None:
            logger.warning(
                f"Round {self.round.round_num} restarted at tick {event.tick}; "
                "discarding the unfinished round"
            )

        if event.players:
            self.roster = {entry.player_id: entry for entry in event.players}
        elif not self.roster:
            logger.debug("Round start without a roster; players will register lazily")

        round_num = event.round_num if event.round_num is not None else len(self.rounds) + 1
        self.round = RoundState(round_num=round_num, start_tick=event.tick)
        for entry in self.roster.values():
            self._register(entry.player_id, entry.name)
            self.round.players[entry.player_id] = RoundPlayerStats(
                player_id=entry.player_id,
                side=entry.side,
                health=self.config.match.max_health,
                equipment_value=entry.equipment_value,
            )

        self.advantage.reset()
        self.trades.reset()
        self.phase = MatchPhase.ROUND_LIVE
        logger.debug(f"Round {round_num} live at tick {event.tick} ({len(self.roster)} players)")

    def _on_round_end(self, event: RoundEnd) -> None:
        rnd = self.round
        assert rnd is not None

        for window in self.trades.flush():
            self._close_untraded(window)

        winner = event.winner
        pistol = is_pistol_round(rnd.round_num, self.config.match)
        exit_from = event.tick - self.exit_frag_ticks
        for player_id, round_stats in rnd.players.items():
            won = winner is not None and round_stats.side == winner
            if winner is not None and not won:
                round_stats.exit_frags = sum(1 for t in round_stats.kill_ticks if t >= exit_from)
            self._register(player_id).fold(round_stats, won, pistol=pistol)

        self.rounds.append(
            RoundRecord(
                round_num=rnd.round_num,
                start_tick=rnd.start_tick,
                end_tick=event.tick,
                winner=winner,
                reason=event.reason,
                pistol_round=pistol,
                bomb_planted=rnd.bomb_planted,
                plant_tick=rnd.plant_tick,
                kills=rnd.kills,
                untraded_deaths=MappingProxyType(dict(rnd.untraded)),
                player_sides=MappingProxyType(
                    {pid: stats.side for pid, stats in rnd.players.items()}
                ),
            )
        )

        self.advantage.reset()
        self.trades.reset()
        self.round = None
        self.phase = MatchPhase.ROUND_ENDED
        logger.debug(f"Round {rnd.round_num} ended at tick {event.tick}, winner {winner}")

    # ------------------------------------------------------------------
    # Kills
    # ------------------------------------------------------------------

    def _on_kill(self, event: Kill) -> None:
        rnd = self.round
        assert rnd is not None

        victim = self._player(event.victim_id, event.victim_side, event.victim_name)
        if victim is None:
            logger.debug(f"Kill at tick {event.tick} has an unplaceable victim; ignored")
            return
        if not victim.alive:
            logger.warning(
                f"Kill of already-dead player {event.victim_id} at tick {event.tick}; ignored"
            )
            return

        killer = None
        if event.attacker_id and event.attacker_id != event.victim_id:
            killer = self._player(event.attacker_id, event.attacker_side, event.attacker_name)

        if event.victim_equipment_value > 0:
            victim.equipment_value = event.victim_equipment_value
        if killer is not None and event.attacker_equipment_value > 0:
            killer.equipment_value = event.attacker_equipment_value
        if event.victim_position is not None:
            rnd.positions[victim.player_id] = event.victim_position
        if killer is not None and event.attacker_position is not None:
            rnd.positions[killer.player_id] = event.attacker_position

        before = self._snapshot(event.tick)
        victim.alive = False
        victim.health = 0
        after = self._snapshot(event.tick)
        rnd.kills += 1

        eco: EcoMultipliers | None = None
        if killer is not None and killer.side != victim.side:
            eco = self._credit_kill(event, killer, victim, before, after)
        elif killer is not None:
            killer.team_kills += 1
            logger.debug(f"Team kill: {killer.player_id} -> {victim.player_id}")

        self._credit_death(event, killer, victim, before, after, eco)
        self._check_clutch(victim.side)

    def _credit_kill(
        self,
        event: Kill,
        killer: RoundPlayerStats,
        victim: RoundPlayerStats,
        before: RoundSnapshot,
        after: RoundSnapshot,
    ) -> EcoMultipliers:
        rnd = self.round
        assert rnd is not None

        swing = self.swing.credit(killer, killer.side, before, after)

        round_over = after.alive_for(victim.side) == 0
        beneficiaries = self.advantage.record_kill(
            killer.player_id, killer.side, open_slot=not round_over and killer.alive
        )
        if beneficiaries:
            self.swing.survival_credit(
                [
                    rnd.players[pid]
                    for pid in beneficiaries
                    if pid in rnd.players and rnd.players[pid].alive
                ],
                swing,
            )

        trade = self.trades.match_kill(killer.player_id, killer.side, victim.side, event.tick)
        if trade is not None:
            killer.trade_kills += 1
            if trade.fast:
                killer.fast_trades += 1
            avenged = rnd.players.get(trade.window.victim_id)
            if avenged is not None:
                avenged.was_traded = True
                avenged.traded_deaths += 1
            logger.debug(
                f"Trade: {killer.player_id} avenged {trade.window.victim_id} "
                f"after {trade.delta_ticks} ticks"
            )

        eco = self.economy.evaluate(killer.equipment_value, victim.equipment_value)
        killer.eco_kill_value += eco.kill

        killer.kills += 1
        killer.kill_ticks.append(event.tick)
        weapon = normalize_weapon(event.weapon)
        if event.headshot:
            killer.headshot_kills += 1
        if weapon in AWP_WEAPONS:
            killer.awp_kills += 1
        elif weapon in KNIFE_WEAPONS:
            killer.knife_kills += 1
        elif weapon in PISTOL_WEAPONS and victim.equipment_value >= RIFLE_LOADOUT_VALUE:
            killer.pistol_vs_rifle_kills += 1

        if not rnd.opening_taken:
            rnd.opening_taken = True
            killer.opening_kills += 1
            victim.opening_deaths += 1

        if event.assister_id and event.assister_id not in (killer.player_id, victim.player_id):
            assister = self._player(event.assister_id, killer.side)
            if assister is not None and assister.side == killer.side:
                assister.assists += 1

        return eco

    def _credit_death(
        self,
        event: Kill,
        killer: RoundPlayerStats | None,
        victim: RoundPlayerStats,
        before: RoundSnapshot,
        after: RoundSnapshot,
        eco: EcoMultipliers | None,
    ) -> None:
        rnd = self.round
        assert rnd is not None

        if self.config.swing.attribute_deaths:
            self.swing.credit(victim, victim.side, before, after)

        if eco is None:
            # Team kill, suicide or world damage: valued as an equal-loadout death
            eco = self.economy.evaluate(victim.equipment_value, victim.equipment_value)
        victim.eco_death_value -= eco.death

        victim.deaths += 1
        if event.tick - rnd.start_tick <= self.early_death_ticks:
            victim.early_deaths += 1
        if normalize_weapon(event.victim_weapon) in AWP_WEAPONS:
            victim.awp_deaths += 1
            if victim.awp_kills == 0:
                victim.awp_deaths_no_kill += 1

        self.advantage.record_death(victim.player_id, victim.side)

        if killer is not None and killer.side != victim.side:
            teammates = {
                p.player_id: rnd.positions[p.player_id]
                for p in rnd.alive(victim.side)
                if p.player_id in rnd.positions
            }
            self.trades.open_window(
                victim_id=victim.player_id,
                victim_side=victim.side,
                killer_id=killer.player_id,
                tick=event.tick,
                position=rnd.positions.get(victim.player_id),
                teammate_positions=teammates,
            )

    def _check_clutch(self, side: Side) -> None:
        rnd = self.round
        assert rnd is not None
        if side in rnd.clutch_sides:
            return

        survivors = rnd.alive(side)
        opponents = rnd.alive_count(side.opponent)
        if len(survivors) == 1 and opponents > 0:
            clutcher = survivors[0]
            clutcher.clutch = True
            clutcher.clutch_opponents = opponents
            rnd.clutch_sides.add(side)
            logger.debug(f"Clutch: {clutcher.player_id} ({side}) 1v{opponents}")

    def _close_untraded(self, window: TradeWindow) -> None:
        rnd = self.round
        if rnd is None:
            return
        rnd.untraded[window.victim_side] += 1
        killer = rnd.players.get(window.killer_id) if window.killer_id else None
        if killer is not None:
            killer.trade_denials += 1

    # ------------------------------------------------------------------
    # Damage, bomb, utility
    # ------------------------------------------------------------------

    def _on_player_hurt(self, event: PlayerHurt) -> None:
        victim = self._player(event.victim_id)
        if victim is None or not victim.alive:
            return

        damage = min(max(event.damage, 0), victim.health)
        victim.health -= damage

        attacker = self._player(event.attacker_id)
        if attacker is None or attacker is victim:
            return
        if attacker.side != victim.side:
            attacker.damage += damage
            if event.is_utility_damage:
                attacker.utility_damage += damage
        else:
            attacker.team_damage += damage

    def _on_bomb_planted(self, event: BombPlanted) -> None:
        rnd = self.round
        assert rnd is not None
        if rnd.bomb_planted:
            logger.warning(f"Duplicate bomb plant at tick {event.tick}; ignored")
            return

        before = self._snapshot(event.tick)
        rnd.bomb_planted = True
        rnd.plant_tick = event.tick
        after = self._snapshot(event.tick)

        planter = self._player(event.player_id, Side.T)
        if planter is not None:
            planter.bomb_plants += 1
            self.swing.credit(planter, Side.T, before, after)

    def _on_bomb_defused(self, event: BombDefused) -> None:
        rnd = self.round
        assert rnd is not None
        if rnd.bomb_defused:
            logger.warning(f"Duplicate bomb defuse at tick {event.tick}; ignored")
            return

        before = self._snapshot(event.tick)
        rnd.bomb_defused = True
        after = self._snapshot(event.tick)

        defuser = self._player(event.player_id, Side.CT)
        if defuser is not None:
            defuser.bomb_defuses += 1
            self.swing.credit(defuser, Side.CT, before, after)

    def _on_flash(self, event: FlashExplode) -> None:
        rnd = self.round
        assert rnd is not None

        thrower = self._player(event.thrower_id)
        if thrower is None:
            return
        if event.thrower_position is not None:
            rnd.positions[thrower.player_id] = event.thrower_position

        min_duration = self.config.match.flash_min_duration
        for player_id, duration in event.blinded():
            if player_id == thrower.player_id:
                continue

            target = rnd.players.get(player_id)
            if target is not None and not target.alive:
                continue
            if target is not None:
                teammate = target.side == thrower.side
            else:
                teammate = event.is_team_flash

            if teammate:
                thrower.team_flash_count += 1
                thrower.team_flash_duration += duration
            elif duration >= min_duration:
                thrower.enemies_flashed += 1
                thrower.flash_duration += duration


# ============================================================================
# Convenience
# ============================================================================


def rate_match(
    events: Iterable[MatchEvent],
    config: EngineConfig | None = None,
    match_id: str = "match",
    win_probability: WinProbability | None = None,
) -> MatchResult:
    """Replay ``events`` through a fresh engine and return the result."""
    engine = MatchStateMachine(config, match_id=match_id, win_probability=win_probability)
    return engine.process(events)


def rate_file(
    path: Path,
    config: EngineConfig | None = None,
    match_id: str | None = None,
) -> MatchResult:
    """Rate a JSON-lines event file. The match id defaults to the file stem."""
    path = Path(path)
    logger.info(f"Rating {path}")
    return rate_match(read_events(path), config=config, match_id=match_id or path.stem)
