"""
Man-advantage tracking for survival credit.

A kill that does not end the round opens an advantage slot for the killer's
side. Each death on a side neutralizes that side's oldest slot. While a
player's slot is live, every further teammate kill earns them a share of
that kill's swing: they created the space the teammate converted.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from itertools import count

from ecorating.core.constants import Side

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdvantageSlot:
    """A man advantage created by a player's kill."""

    player_id: str
    side: Side
    order: int  # Creation order within the round


class AdvantageTracker:
    """Per-side FIFO ledger of advantage slots (round scoped)."""

    def __init__(self) -> None:
        self._slots: dict[Side, deque[AdvantageSlot]] = {side: deque() for side in Side}
        self._order = count()

    def reset(self) -> None:
        """Clear both sides' slots. Called at every round start."""
        for slots in self._slots.values():
            slots.clear()
        self._order = count()

    def slots(self, side: Side) -> tuple[AdvantageSlot, ...]:
        return tuple(self._slots[side])

    def record_kill(self, killer_id: str, killer_side: Side, *, open_slot: bool = True) -> list[str]:
        """
        Register a kill and return the survival-credit beneficiaries.

        Beneficiaries are the distinct owners of live slots on the killer's
        side (the killer excluded), in creation order, collected before the
        killer's own slot is added. ``open_slot=False`` skips the new slot
        when the kill ended the round.
        """
        beneficiaries: list[str] = []
        for slot in self._slots[killer_side]:
            if slot.player_id != killer_id and slot.player_id not in beneficiaries:
                beneficiaries.append(slot.player_id)

        if open_slot:
            self._slots[killer_side].append(
                AdvantageSlot(player_id=killer_id, side=killer_side, order=next(self._order))
            )

        return beneficiaries

    def record_death(self, victim_id: str, victim_side: Side) -> None:
        """
        Neutralize the oldest slot on the victim's side, then drop every
        remaining slot the victim owns (a dead player earns no more credit).
        """
        slots = self._slots[victim_side]
        if slots:
            consumed = slots.popleft()
            logger.debug(f"Advantage slot of {consumed.player_id} ({victim_side}) consumed")

        if any(slot.player_id == victim_id for slot in slots):
            self._slots[victim_side] = deque(s for s in slots if s.player_id != victim_id)
