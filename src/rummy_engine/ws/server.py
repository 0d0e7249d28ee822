"""
FastAPI WebSocket server for the rummy engine.
"""

import asyncio
import logging
import os
from collections import defaultdict
from typing import Any, Dict, List, Optional

import orjson
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..bots.base import BotAction
from ..engine import RummyEngine
from ..errors import GameError, MATCH_NOT_FOUND, PLAYER_NOT_FOUND
from ..models import RosterEntry
from ..serialization import dumps, public_match_info, serialize_card, serialize_meld, serialize_winner
from .events import (
    AddToMeldEvent, CreateMatchRequest, DiscardEvent, DrawEvent, EndTurnEvent, ErrorCode,
    PlayMeldEvent, RearrangeEvent, ReconnectEvent, RequestStateEvent, create_action_event,
    create_error_event, create_game_over_event, create_state_event, parse_inbound_event
)

logger = logging.getLogger(__name__)

DEFAULT_BOT_DELAY = float(os.getenv("RUMMY_BOT_DELAY", "0.8"))


class ConnectionManager:
    """Tracks which WebSocket belongs to which session of which match."""

    def __init__(self):
        self.match_connections: Dict[str, Dict[str, WebSocket]] = defaultdict(dict)

    def connect(self, match_id: str, session_id: str, websocket: WebSocket):
        self.match_connections[match_id][session_id] = websocket
        logger.info(f"Session {session_id} connected to match {match_id}")

    def disconnect(self, match_id: str, session_id: str):
        connections = self.match_connections.get(match_id)
        if connections is None:
            return
        connections.pop(session_id, None)
        if not connections:
            del self.match_connections[match_id]
        logger.info(f"Session {session_id} disconnected from match {match_id}")

    def sessions(self, match_id: str) -> List[str]:
        return list(self.match_connections.get(match_id, {}))

    async def send(self, match_id: str, session_id: str, event: BaseModel):
        websocket = self.match_connections.get(match_id, {}).get(session_id)
        if websocket is None:
            return
        try:
            await websocket.send_text(encode(event))
        except Exception as e:
            logger.error(f"Error sending to session {session_id}: {e}")
            self.disconnect(match_id, session_id)

    async def broadcast(self, match_id: str, event: BaseModel):
        for session_id in self.sessions(match_id):
            await self.send(match_id, session_id, event)


def encode(event: BaseModel) -> str:
    return dumps(event.model_dump(mode="json"))


def describe_action(action: BotAction) -> Dict[str, Any]:
    """Wire form of a bot action's payload."""
    data = {}
    for key, value in action.data.items():
        if key == 'card':
            data[key] = serialize_card(value)
        elif key == 'meld':
            data[key] = serialize_meld(value)
        elif key == 'melds':
            data[key] = [serialize_meld(m) for m in value]
        elif key == 'winner':
            data[key] = serialize_winner(value)
        else:
            data[key] = value
    return data


def create_app(engine: Optional[RummyEngine] = None, bot_delay: Optional[float] = None) -> FastAPI:
    engine = engine or RummyEngine()
    bot_delay = DEFAULT_BOT_DELAY if bot_delay is None else bot_delay
    manager = ConnectionManager()
    bot_tasks: Dict[str, asyncio.Task] = {}

    app = FastAPI(title="Rummy Engine", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.engine = engine
    app.state.connections = manager
    app.state.bot_tasks = bot_tasks

    async def push_state(match_id: str):
        """Send each connected player their own view."""
        state = engine.store.get(match_id)
        if state is None:
            return
        for session_id in manager.sessions(match_id):
            player_id = state.sessions.get(session_id)
            if player_id is None:
                continue
            await manager.send(match_id, session_id, create_state_event(engine.get_view(match_id, player_id)))

    async def announce_winner(match_id: str):
        state = engine.store.get(match_id)
        if state is not None and state.winner is not None:
            await manager.broadcast(match_id, create_game_over_event(serialize_winner(state.winner)))

    async def run_bots(match_id: str):
        """Play consecutive bot turns, pausing so humans can follow along."""
        while engine.is_bot_turn(match_id):
            if bot_delay:
                await asyncio.sleep(bot_delay)
            async with engine.store.lock(match_id):
                try:
                    actions = engine.play_bot_turn(match_id)
                except GameError as e:
                    logger.error(f"Bot turn failed in match {match_id}: {e}")
                    return
            for action in actions:
                await manager.broadcast(
                    match_id,
                    create_action_event(action.type, action.player_id, describe_action(action))
                )
            await push_state(match_id)
            await announce_winner(match_id)
            if not actions:
                return

    def schedule_bots(match_id: str):
        """Keep at most one bot loop running per match."""
        task = bot_tasks.get(match_id)
        if task is not None and not task.done():
            return
        if engine.is_bot_turn(match_id):
            bot_tasks[match_id] = asyncio.create_task(run_bots(match_id))

    app.state.schedule_bots = schedule_bots

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "matches": len(engine.store),
            "connections": sum(len(c) for c in manager.match_connections.values())
        }

    @app.post("/matches")
    async def create_match(request: CreateMatchRequest):
        roster = [RosterEntry(**p.model_dump()) for p in request.players]
        try:
            state = engine.start_match(request.match_id, roster, request.settings)
        except GameError as e:
            raise HTTPException(status_code=400, detail={"code": e.code, "message": e.message})
        schedule_bots(state.id)
        return public_match_info(state)

    @app.delete("/matches/{match_id}")
    async def delete_match(match_id: str):
        task = bot_tasks.pop(match_id, None)
        if task is not None:
            task.cancel()
        engine.remove_match(match_id)
        return {"success": True}

    @app.get("/matches/{match_id}/view/{player_id}")
    async def get_view(match_id: str, player_id: str):
        try:
            return engine.get_view(match_id, player_id)
        except GameError as e:
            status = 404 if e.code in (MATCH_NOT_FOUND, PLAYER_NOT_FOUND) else 400
            raise HTTPException(status_code=status, detail={"code": e.code, "message": e.message})

    @app.websocket("/ws/{match_id}/{session_id}")
    async def websocket_endpoint(websocket: WebSocket, match_id: str, session_id: str):
        await websocket.accept()
        manager.connect(match_id, session_id, websocket)

        state = engine.store.get(match_id)
        if state is not None and session_id in state.sessions:
            async with engine.store.lock(match_id):
                view = engine.reconnect(match_id, state.sessions[session_id], session_id)
            await manager.send(match_id, session_id, create_state_event(view))

        try:
            while True:
                raw_data = await websocket.receive_text()
                try:
                    event = parse_inbound_event(orjson.loads(raw_data))
                    async with engine.store.lock(match_id):
                        action = handle_event(match_id, session_id, event)
                    if action is not None:
                        await manager.broadcast(match_id, action)
                        await push_state(match_id)
                        await announce_winner(match_id)
                        schedule_bots(match_id)
                    else:
                        await push_state(match_id)
                except GameError as e:
                    await manager.send(
                        match_id, session_id, create_error_event(ErrorCode.from_code(e.code), e.message)
                    )
                except ValueError as e:
                    await manager.send(
                        match_id, session_id, create_error_event(ErrorCode.INVALID_EVENT, str(e))
                    )
                except Exception as e:
                    logger.exception(f"Error handling event in match {match_id}: {e}")
                    await manager.send(
                        match_id, session_id, create_error_event(ErrorCode.INTERNAL, "Internal server error")
                    )
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected: match {match_id}, session {session_id}")
        finally:
            manager.disconnect(match_id, session_id)
            state = engine.store.get(match_id)
            if state is not None and session_id in state.sessions:
                engine.disconnect_session(match_id, session_id)
                await push_state(match_id)

    def handle_event(match_id: str, session_id: str, event) -> Optional[BaseModel]:
        """Apply one inbound event; returns the action to broadcast, if any."""
        if isinstance(event, ReconnectEvent):
            engine.reconnect(match_id, event.player_id, session_id, event.old_session_id)
            return None
        if isinstance(event, RequestStateEvent):
            engine.resolve_session(match_id, session_id)
            return None

        player_id = engine.resolve_session(match_id, session_id)

        if isinstance(event, DrawEvent):
            card = engine.draw(match_id, player_id, event.source)
            # The card itself is only public when it came off the discard pile
            data = {"source": event.source}
            if event.source == "discard":
                data["card"] = serialize_card(card)
            return create_action_event("draw", player_id, data)
        if isinstance(event, PlayMeldEvent):
            meld = engine.play_meld(match_id, player_id, event.cards)
            return create_action_event("play_meld", player_id, {"meld": serialize_meld(meld)})
        if isinstance(event, AddToMeldEvent):
            meld = engine.add_to_meld(match_id, player_id, event.card, event.meld_id, event.position)
            return create_action_event(
                "add_to_meld", player_id, {"meld": serialize_meld(meld), "position": event.position}
            )
        if isinstance(event, RearrangeEvent):
            hand_before = [c.id for c in engine.get_match(match_id).get_player(player_id).hand]
            melds = engine.rearrange_table(
                match_id, player_id, [m.model_dump() for m in event.melds], event.cards_from_hand
            )
            table_ids = {c.id for m in melds for c in m.cards}
            used = [card_id for card_id in hand_before if card_id in table_ids]
            return create_action_event(
                "rearrange", player_id,
                {"melds": [serialize_meld(m) for m in melds], "cards_from_hand": used}
            )
        if isinstance(event, DiscardEvent):
            state = engine.get_match(match_id)
            card = state.get_player(player_id).find_card(event.card)
            engine.discard(match_id, player_id, event.card)
            return create_action_event("discard", player_id, {"card": serialize_card(card)})
        if isinstance(event, EndTurnEvent):
            engine.end_turn(match_id, player_id)
            return create_action_event("end_turn", player_id, {})
        raise ValueError(f"Unhandled event type: {type(event)}")

    return app


app = create_app()
