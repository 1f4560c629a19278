"""
Trade detection.

Every death opens a trade window for the dead player's side. A later kill
by a teammate of the dead player, on an enemy of the dead player, inside
the window (and, when positions are known, by a teammate who was close
enough to the death) trades that death. One kill trades at most one death
and a traded window is closed.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from ecorating.core.config import TradeConfig
from ecorating.core.constants import Side
from ecorating.core.events import Position

logger = logging.getLogger(__name__)


@dataclass
class TradeWindow:
    """An open death awaiting an avenging kill."""

    victim_id: str
    victim_side: Side
    killer_id: str | None
    death_tick: int
    expires_tick: int
    position: Position | None = None
    # Last known positions of the victim's living teammates at the time of death
    teammate_positions: dict[str, Position] = field(default_factory=dict)

    def is_open_at(self, tick: int) -> bool:
        return tick <= self.expires_tick


@dataclass(frozen=True)
class TradeMatch:
    """A kill that traded an open death."""

    window: TradeWindow
    trader_id: str
    tick: int
    delta_ticks: int
    fast: bool


class TradeDetector:
    """Round-scoped set of open trade windows, keyed by the dead player's side."""

    def __init__(self, window_ticks: int, fast_trade_ticks: int, proximity_units: float):
        self.window_ticks = window_ticks
        self.fast_trade_ticks = fast_trade_ticks
        self.proximity_units = proximity_units
        self._windows: dict[Side, deque[TradeWindow]] = {side: deque() for side in Side}

    @classmethod
    def from_config(cls, config: TradeConfig, tick_rate: int) -> TradeDetector:
        return cls(
            window_ticks=config.window_ticks(tick_rate),
            fast_trade_ticks=config.fast_trade_ticks(tick_rate),
            proximity_units=config.proximity_units,
        )

    def reset(self) -> None:
        for windows in self._windows.values():
            windows.clear()

    def open_windows(self, side: Side | None = None) -> list[TradeWindow]:
        if side is not None:
            return list(self._windows[side])
        return [w for windows in self._windows.values() for w in windows]

    def open_window(
        self,
        victim_id: str,
        victim_side: Side,
        killer_id: str | None,
        tick: int,
        position: Position | None = None,
        teammate_positions: dict[str, Position] | None = None,
    ) -> TradeWindow:
        window = TradeWindow(
            victim_id=victim_id,
            victim_side=victim_side,
            killer_id=killer_id,
            death_tick=tick,
            expires_tick=tick + self.window_ticks,
            position=position,
            teammate_positions=dict(teammate_positions or {}),
        )
        self._windows[victim_side].append(window)
        return window

    def _within_reach(self, window: TradeWindow, trader_id: str) -> bool:
        trader_position = window.teammate_positions.get(trader_id)
        if window.position is None or trader_position is None:
            # No spatial data: the time window alone decides
            return True
        return trader_position.distance_to(window.position) <= self.proximity_units

    def match_kill(
        self,
        killer_id: str,
        killer_side: Side,
        victim_side: Side,
        tick: int,
    ) -> TradeMatch | None:
        """
        Try to trade the oldest qualifying open death with this kill.

        Returns None when no open window qualifies; that is the ordinary,
        non-trade path.
        """
        if victim_side != killer_side.opponent:
            return None

        windows = self._windows[killer_side]
        for window in windows:
            if window.victim_id == killer_id or not window.is_open_at(tick):
                continue
            if not self._within_reach(window, killer_id):
                continue

            windows.remove(window)
            delta = tick - window.death_tick
            return TradeMatch(
                window=window,
                trader_id=killer_id,
                tick=tick,
                delta_ticks=delta,
                fast=delta <= self.fast_trade_ticks,
            )

        return None

    def expire(self, tick: int) -> list[TradeWindow]:
        """Close and return every window whose budget ran out before ``tick``."""
        expired: list[TradeWindow] = []
        for side, windows in self._windows.items():
            keep = deque()
            for window in windows:
                if window.is_open_at(tick):
                    keep.append(window)
                else:
                    expired.append(window)
            self._windows[side] = keep
        return expired

    def flush(self) -> list[TradeWindow]:
        """Close and return everything still open (round over)."""
        remaining = self.open_windows()
        self.reset()
        return remaining
