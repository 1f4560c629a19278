"""
JSON-lines event source.

Reads one JSON object per line and yields typed events in file order:

    {"type": "round_start", "tick": 100, "round_num": 1, "players": [...]}
    {"type": "kill", "tick": 900, "attacker_id": "7656...", "victim_id": "7656...", ...}

Unknown event types are skipped, unknown keys are ignored. Lines that are
not valid UTF-8 or JSON, and events missing a required key or carrying a
non-finite number, raise MalformedEventError with the offending line number.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from ecorating.core.constants import RoundEndReason, Side
from ecorating.core.errors import MalformedEventError
from ecorating.core.events import (
    EVENT_TYPES,
    BombDefused,
    BombPlanted,
    FlashExplode,
    Kill,
    MatchEvent,
    PlayerHurt,
    Position,
    RosterEntry,
    RoundEnd,
    RoundStart,
)

logger = logging.getLogger(__name__)


def _side(value: Any) -> Side | None:
    if value is None or value == "":
        return None
    if isinstance(value, int):
        # demoparser team numbers
        return {2: Side.T, 3: Side.CT}.get(value)
    text = str(value).strip().upper()
    if text in ("T", "TERRORIST", "TERRORISTS"):
        return Side.T
    if text in ("CT", "COUNTER-TERRORIST", "COUNTERTERRORIST"):
        return Side.CT
    raise ValueError(f"unknown side {value!r}")


def _number(value: Any) -> float:
    """Float that must be finite; JSON such as 1e999 decodes to inf."""
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite number {value!r}")
    return number


def _position(value: Any) -> Position | None:
    if value is None:
        return None
    if isinstance(value, dict):
        return Position(_number(value["x"]), _number(value["y"]), _number(value.get("z", 0.0)))
    coords = [_number(v) for v in value]
    return Position(*coords[:3])


def _player_id(value: Any) -> str | None:
    if value is None or value == "" or value == 0:
        return None
    return str(value)


def _reason(value: Any) -> str:
    """Round end reason as text; numeric CS2 reason codes become their names."""
    if value is None:
        return ""
    if isinstance(value, int):
        try:
            return RoundEndReason(value).name.lower()
        except ValueError:
            return str(value)
    return str(value)


def _required(data: dict[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise KeyError(key)
    return data[key]


def _roster(entries: Any) -> tuple[RosterEntry, ...]:
    roster = []
    for entry in entries or ():
        side = _side(_required(entry, "side"))
        if side is None:
            raise ValueError(f"roster entry without a side: {entry!r}")
        roster.append(
            RosterEntry(
                player_id=str(_required(entry, "player_id")),
                side=side,
                name=str(entry.get("name", "")),
                equipment_value=_number(entry.get("equipment_value", 0.0)),
            )
        )
    return tuple(roster)


def event_from_dict(data: dict[str, Any], line_number: int | None = None) -> MatchEvent | None:
    """
    Build a typed event from a decoded JSON object.

    Returns None for event types the engine does not consume.
    """
    event_type = str(data.get("type", "")).lower()
    cls = EVENT_TYPES.get(event_type)
    if cls is None:
        logger.debug(f"Skipping unsupported event type {event_type!r} (line {line_number})")
        return None

    try:
        tick = int(_required(data, "tick"))

        if cls is RoundStart:
            round_num = data.get("round_num")
            return RoundStart(
                tick=tick,
                round_num=int(round_num) if round_num is not None else None,
                players=_roster(data.get("players")),
            )

        if cls is RoundEnd:
            return RoundEnd(
                tick=tick,
                winner=_side(data.get("winner")),
                reason=_reason(data.get("reason")),
            )

        if cls is Kill:
            return Kill(
                tick=tick,
                victim_id=str(_required(data, "victim_id")),
                attacker_id=_player_id(data.get("attacker_id")),
                weapon=str(data.get("weapon", "")),
                victim_weapon=str(data.get("victim_weapon", "")),
                attacker_equipment_value=_number(data.get("attacker_equipment_value", 0.0)),
                victim_equipment_value=_number(data.get("victim_equipment_value", 0.0)),
                attacker_side=_side(data.get("attacker_side")),
                victim_side=_side(data.get("victim_side")),
                attacker_position=_position(data.get("attacker_position")),
                victim_position=_position(data.get("victim_position")),
                assister_id=_player_id(data.get("assister_id")),
                headshot=bool(data.get("headshot", False)),
                attacker_name=str(data.get("attacker_name", "")),
                victim_name=str(data.get("victim_name", "")),
            )

        if cls is PlayerHurt:
            return PlayerHurt(
                tick=tick,
                victim_id=str(_required(data, "victim_id")),
                attacker_id=_player_id(data.get("attacker_id")),
                damage=int(_required(data, "damage")),
                hitgroup=str(data.get("hitgroup", "")),
                is_utility_damage=bool(data.get("is_utility_damage", False)),
                weapon=str(data.get("weapon", "")),
            )

        if cls is BombPlanted:
            return BombPlanted(
                tick=tick,
                player_id=_player_id(data.get("player_id")),
                site=str(data.get("site", "")),
            )

        if cls is BombDefused:
            return BombDefused(tick=tick, player_id=_player_id(data.get("player_id")))

        return FlashExplode(
            tick=tick,
            thrower_id=str(_required(data, "thrower_id")),
            affected_player_ids=tuple(str(p) for p in data.get("affected_player_ids", ())),
            durations=tuple(_number(d) for d in data.get("durations", ())),
            is_team_flash=bool(data.get("is_team_flash", False)),
            thrower_position=_position(data.get("thrower_position")),
        )
    except KeyError as e:
        raise MalformedEventError(
            f"{event_type} event missing required field {e.args[0]!r}", line_number
        ) from e
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedEventError(f"invalid {event_type} event: {e}", line_number) from e


def iter_events(lines: Iterable[str]) -> Iterator[MatchEvent]:
    """Decode an iterable of JSON lines into typed events."""
    lines = iter(lines)
    line_number = 0
    while True:
        line_number += 1
        try:
            line = next(lines)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            raise MalformedEventError(f"stream is not valid UTF-8 ({e.reason})", line_number) from e

        text = line.strip()
        if not text or text.startswith("#"):
            continue
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedEventError(f"invalid JSON ({e.msg})", line_number) from e
        if not isinstance(data, dict):
            raise MalformedEventError("event is not a JSON object", line_number)

        event = event_from_dict(data, line_number)
        if event is not None:
            yield event


def read_events(path: Path) -> Iterator[MatchEvent]:
    """Stream typed events from a JSON-lines file."""
    with open(path, encoding="utf-8") as f:
        yield from iter_events(f)
