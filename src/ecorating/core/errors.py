"""
eco-rating - Error taxonomy

Recoverable input anomalies never raise; they are handled where they occur.
Everything below is fatal for the match being processed.
"""

from __future__ import annotations


class EcoRatingError(Exception):
    """Base class for all engine errors."""


class EventOrderError(EcoRatingError):
    """An event arrived with a tick earlier than the last processed tick."""

    def __init__(self, tick: int, last_tick: int, event_type: str = ""):
        self.tick = tick
        self.last_tick = last_tick
        self.event_type = event_type
        label = f" ({event_type})" if event_type else ""
        super().__init__(f"Event{label} at tick {tick} precedes last processed tick {last_tick}")


class MalformedEventError(EcoRatingError):
    """The event stream could not be decoded into a typed event."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        location = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{location}{message}")


class EngineStateError(EcoRatingError):
    """The engine was used after finalization or after a fatal failure."""


class MatchProcessingError(EcoRatingError):
    """A fatal error while replaying one match, with its location."""

    def __init__(
        self,
        match_id: str,
        event_index: int,
        tick: int | None,
        cause: Exception,
    ):
        self.match_id = match_id
        self.event_index = event_index
        self.tick = tick
        self.cause = cause
        where = f"event #{event_index}"
        if tick is not None:
            where += f" (tick {tick})"
        super().__init__(f"Match '{match_id}' failed at {where}: {cause}")

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "event_index": self.event_index,
            "tick": self.tick,
            "error_type": type(self.cause).__name__,
            "message": str(self.cause),
        }
