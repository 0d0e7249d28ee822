"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from ..rules import RuleConfig


class EventType(str, Enum):
    """Inbound event types."""
    DRAW = "draw"
    PLAY_MELD = "play_meld"
    ADD_TO_MELD = "add_to_meld"
    REARRANGE = "rearrange"
    DISCARD = "discard"
    END_TURN = "end_turn"
    RECONNECT = "reconnect"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    STATE = "state"
    ACTION = "action"
    GAME_OVER = "game_over"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    MATCH_EXISTS = "MATCH_EXISTS"
    MATCH_FINISHED = "MATCH_FINISHED"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    WRONG_PHASE = "WRONG_PHASE"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    INVALID_MELD = "INVALID_MELD"
    MUST_KEEP_ONE_CARD = "MUST_KEEP_ONE_CARD"
    EMPTY_PILE = "EMPTY_PILE"
    INVALID_SOURCE = "INVALID_SOURCE"
    MELD_NOT_FOUND = "MELD_NOT_FOUND"
    INVALID_REARRANGEMENT = "INVALID_REARRANGEMENT"
    HAND_NOT_EMPTY = "HAND_NOT_EMPTY"
    INSUFFICIENT_CARDS = "INSUFFICIENT_CARDS"
    SESSION_IN_USE = "SESSION_IN_USE"
    INTERNAL = "INTERNAL"

    @classmethod
    def from_code(cls, code: str) -> 'ErrorCode':
        try:
            return cls(code)
        except ValueError:
            return cls.INTERNAL


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class DrawEvent(BaseEvent):
    """Draw a card event."""
    type: EventType = EventType.DRAW
    source: str = Field(default="deck", pattern="^(deck|discard)$")


class PlayMeldEvent(BaseEvent):
    """Lay down a new meld event."""
    type: EventType = EventType.PLAY_MELD
    cards: List[str] = Field(..., min_length=3)


class AddToMeldEvent(BaseEvent):
    """Add one card to a table meld event."""
    type: EventType = EventType.ADD_TO_MELD
    card: str = Field(..., min_length=1)
    meld_id: str = Field(..., min_length=1)
    position: str = Field(default="end", pattern="^(start|end)$")


class ProposedMeld(BaseModel):
    """One meld of a proposed table layout."""
    id: Optional[str] = None
    cards: List[str] = Field(default_factory=list)


class RearrangeEvent(BaseEvent):
    """Rearrange the table event."""
    type: EventType = EventType.REARRANGE
    melds: List[ProposedMeld]
    cards_from_hand: Optional[List[str]] = None


class DiscardEvent(BaseEvent):
    """Discard and end turn event."""
    type: EventType = EventType.DISCARD
    card: str = Field(..., min_length=1)


class EndTurnEvent(BaseEvent):
    """Go out without discarding event."""
    type: EventType = EventType.END_TURN


class ReconnectEvent(BaseEvent):
    """Reclaim a seat from a new connection."""
    type: EventType = EventType.RECONNECT
    player_id: Optional[str] = None
    old_session_id: Optional[str] = None


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    DrawEvent,
    PlayMeldEvent,
    AddToMeldEvent,
    RearrangeEvent,
    DiscardEvent,
    EndTurnEvent,
    ReconnectEvent,
    RequestStateEvent
]


# Outbound event models
class StateEvent(BaseModel):
    """Per-player state event."""
    type: OutboundEventType = OutboundEventType.STATE
    state: Dict[str, Any]
    timestamp: float


class ActionEvent(BaseModel):
    """Announces an accepted action to everyone in the match."""
    type: OutboundEventType = OutboundEventType.ACTION
    action: str
    player_id: str
    data: Dict[str, Any]
    timestamp: float


class GameOverEvent(BaseModel):
    """Match finished event."""
    type: OutboundEventType = OutboundEventType.GAME_OVER
    winner: Dict[str, Any]
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


# HTTP request models
class RosterModel(BaseModel):
    """One seat of the roster handed over by room management."""
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=30)
    is_bot: bool = False
    session_id: Optional[str] = None


class CreateMatchRequest(BaseModel):
    """Start a match from a roster."""
    match_id: str = Field(..., min_length=1, max_length=50)
    players: List[RosterModel] = Field(..., min_length=2)
    settings: RuleConfig = Field(default_factory=RuleConfig)


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    event_type = data.get("type")

    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_map = {
        EventType.DRAW: DrawEvent,
        EventType.PLAY_MELD: PlayMeldEvent,
        EventType.ADD_TO_MELD: AddToMeldEvent,
        EventType.REARRANGE: RearrangeEvent,
        EventType.DISCARD: DiscardEvent,
        EventType.END_TURN: EndTurnEvent,
        EventType.RECONNECT: ReconnectEvent,
        EventType.REQUEST_STATE: RequestStateEvent,
    }

    event_class = event_map[event_type]
    try:
        return event_class(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_state_event(state: Dict[str, Any]) -> StateEvent:
    """Create a per-player state event."""
    return StateEvent(state=state, timestamp=time.time())


def create_action_event(action: str, player_id: str, data: Dict[str, Any]) -> ActionEvent:
    """Create an action broadcast event."""
    return ActionEvent(action=action, player_id=player_id, data=data, timestamp=time.time())


def create_game_over_event(winner: Dict[str, Any]) -> GameOverEvent:
    """Create a game over event."""
    return GameOverEvent(winner=winner, timestamp=time.time())
