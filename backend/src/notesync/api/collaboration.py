"""Real-time collaboration over WebSocket.

Clients authenticate with the access token (``?token=`` or the auth cookie),
then exchange JSON events::

    -> {"event": "join-note", "noteId": "...", "password": "..."}
    -> {"event": "update-note", "noteId": "...", ...}
    -> {"event": "leave-note"}
    <- {"event": "joined", "noteId": "..."}
    <- {"event": "receive-update", "data": {...}}
    <- {"event": "left"}
    <- {"event": "error", "error": "..."}

Joining a password protected note needs its password in the join message;
members of the group receive live content, so they pass the same check as
a read. Update payloads are relayed verbatim to the other members of the
note's group; nothing is stored.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from ..config import get_settings
from ..core.logging import get_logger
from ..core.repositories.note_repository import NoteRepository
from ..database import AsyncSessionLocal
from ..realtime.relay import CollaborationRelay, JoinResult, SessionHandle, Transport
from ..security import get_user_id_from_token
from ..security.access import (
    AccessDecision,
    NoteOperation,
    NoteSnapshot,
    decide_access,
    verify_note_password,
)

logger = get_logger("collaboration")

router = APIRouter(prefix="/collab", tags=["collaboration"])

JoinAuthorizer = Callable[[UUID, UUID, Optional[str]], Awaitable[Optional[AccessDecision]]]


def get_relay(websocket: WebSocket) -> CollaborationRelay:
    """Relay owned by the running application."""
    return websocket.app.state.relay


def join_decision(
    snapshot: NoteSnapshot, user_id: UUID, password: Optional[str] = None
) -> AccessDecision:
    """Members edit the note and see its content, so both EDIT and READ must pass."""
    decision = decide_access(snapshot, user_id, NoteOperation.EDIT)
    if decision != AccessDecision.ALLOW:
        return decision
    verified = bool(password) and verify_note_password(password, snapshot.password_hash)
    return decide_access(snapshot, user_id, NoteOperation.READ, password_verified=verified)


async def authorize_join(
    note_id: UUID, user_id: UUID, password: Optional[str] = None
) -> Optional[AccessDecision]:
    """Join decision for the note, or None when it does not exist."""
    async with AsyncSessionLocal() as session:
        snapshot = await NoteRepository(session).get_access_snapshot(note_id)
    if snapshot is None:
        return None
    return join_decision(snapshot, user_id, password)


def get_join_authorizer() -> JoinAuthorizer:
    return authorize_join


def _error(message: str) -> Dict[str, Any]:
    return {"event": "error", "error": message}


def _parse_note_id(raw: Any) -> Optional[UUID]:
    try:
        return UUID(str(raw))
    except ValueError:
        return None


class CollaborationSession:
    """Inbound event loop of one connection."""

    def __init__(
        self,
        relay: CollaborationRelay,
        handle: SessionHandle,
        user_id: UUID,
        authorize: JoinAuthorizer,
        transport: Transport,
    ):
        self.relay = relay
        self.transport = transport
        self.handle = handle
        self.user_id = user_id
        self.authorize = authorize
        self.max_payload_bytes = get_settings().relay_max_payload_bytes

    def reply(self, message: Dict[str, Any]) -> None:
        self.relay.send(self.handle, message)

    async def handle_text(self, raw: str) -> None:
        if len(raw.encode("utf-8")) > self.max_payload_bytes:
            logger.warning(f"Oversized message from connection {self.handle.connection_id}")
            self.reply(_error("Message too large"))
            return

        try:
            message = json.loads(raw)
        except ValueError:
            message = None
        if not isinstance(message, dict):
            self.reply(_error("Invalid message"))
            return

        event = message.get("event")
        if event == "join-note":
            await self._join(message.get("noteId"), message.get("password"))
        elif event == "update-note":
            await self._update(message)
        elif event == "leave-note":
            await self.relay.leave(self.handle)
            self.reply({"event": "left"})
        else:
            self.reply(_error("Unknown event"))

    async def _join(self, raw_note_id: Any, password: Any) -> None:
        note_id = _parse_note_id(raw_note_id)
        if note_id is None:
            self.reply(_error("Invalid note id"))
            return

        decision = await self.authorize(
            note_id, self.user_id, password if isinstance(password, str) else None
        )
        if decision is None:
            self.reply(_error("Note not found"))
            return
        if decision == AccessDecision.REQUIRE_PASSWORD:
            self.reply(_error("Incorrect password" if password else "Password required"))
            return
        if decision != AccessDecision.ALLOW:
            logger.info(f"User {self.user_id} refused on note {note_id}: {decision.value}")
            self.reply(_error("Not authorized to access this note"))
            return

        result = await self.relay.join(self.handle, str(note_id))
        if result == JoinResult.UNKNOWN_SESSION:
            await self._end_dropped_session()
        self.reply({"event": "joined", "noteId": str(note_id)})

    async def _end_dropped_session(self) -> None:
        """The relay evicted this connection; tell the client directly and stop."""
        logger.info(f"Connection {self.handle.connection_id} was dropped by the relay")
        try:
            await self.transport.send_json(_error("Connection dropped, reconnect to continue"))
            await self.transport.close(code=status.WS_1011_INTERNAL_ERROR)
        except RuntimeError as e:
            # transport already closed by the eviction
            logger.debug(f"Could not notify {self.handle.connection_id}: {e}")
        raise WebSocketDisconnect(code=status.WS_1011_INTERNAL_ERROR)

    async def _update(self, message: Dict[str, Any]) -> None:
        current = self.relay.current_note(self.handle)
        note_id = _parse_note_id(message.get("noteId"))
        if current is None or note_id is None or str(note_id) != current:
            self.reply(_error("Join the note before sending updates"))
            return

        data = {key: value for key, value in message.items() if key != "event"}
        result = await self.relay.relay(
            self.handle, current, {"event": "receive-update", "data": data}
        )
        if result.dropped:
            logger.info(f"Update on note {current} dropped for {result.dropped} member(s)")


@router.websocket("/ws")
async def collaboration_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    relay: CollaborationRelay = Depends(get_relay),
    authorize: JoinAuthorizer = Depends(get_join_authorizer),
):
    """Authenticate, then run the event loop until the client goes away."""
    token = token or websocket.cookies.get(get_settings().auth_cookie_name)
    user_id = await get_user_id_from_token(token) if token else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    handle = await relay.connect(websocket, user_id=user_id)
    session = CollaborationSession(relay, handle, user_id, authorize, websocket)
    logger.info(f"User {user_id} connected as {handle.connection_id}")

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE))
            if frame.get("text") is not None:
                await session.handle_text(frame["text"])
            else:
                # binary frames carry nothing the protocol understands
                session.reply(_error("Invalid message"))
    except WebSocketDisconnect as e:
        logger.info(f"Connection {handle.connection_id} closed ({e.code})")
    finally:
        await relay.disconnect(handle)
