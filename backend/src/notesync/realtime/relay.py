"""In-memory relay of live edits between connections viewing the same note.

The relay keeps one group of connections per note id. A payload relayed by
one member is put on the outbound queue of every other member; a writer task
per connection drains that queue to the transport. Nothing is persisted and
nothing is replayed to late joiners.

Membership changes take the registry lock and then the group lock; fan-out
only takes the group lock. A full outbound queue counts as a failed forward
and enough of those evict the receiver instead of slowing the sender down.
"""

import asyncio
import enum
import itertools
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from ..core.logging import get_logger

logger = get_logger("realtime")


class Transport(Protocol):
    """What the relay needs from a connection (a Starlette WebSocket fits)."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class JoinResult(str, enum.Enum):
    JOINED = "joined"
    ALREADY_JOINED = "already_joined"
    UNKNOWN_SESSION = "unknown_session"


@dataclass(frozen=True)
class RelayResult:
    delivered: int = 0
    dropped: int = 0


@dataclass(frozen=True)
class SessionHandle:
    """Stable address of one connection.

    The generation makes a handle from a closed session useless even if a
    new session reuses its connection id.
    """

    connection_id: str
    generation: int


class _Connection:
    def __init__(self, handle: SessionHandle, transport: Transport, outbox_size: int, user_id=None):
        self.handle = handle
        self.transport = transport
        self.user_id = user_id
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self.pump: Optional[asyncio.Task] = None
        self.note_id: Optional[str] = None
        self.failed_forwards = 0
        self.closed = False


class _Group:
    def __init__(self, note_id: str):
        self.note_id = note_id
        self.members: Dict[str, _Connection] = {}
        self.lock = asyncio.Lock()


class CollaborationRelay:
    """Registry of collaboration groups, owned by the application."""

    def __init__(self, outbox_size: int = 64, max_failed_forwards: int = 1):
        if outbox_size < 1:
            raise ValueError("outbox_size must be at least 1")
        if max_failed_forwards < 1:
            raise ValueError("max_failed_forwards must be at least 1")
        self.outbox_size = outbox_size
        self.max_failed_forwards = max_failed_forwards
        self._connections: Dict[str, _Connection] = {}
        self._groups: Dict[str, _Group] = {}
        self._registry_lock = asyncio.Lock()
        self._generations = itertools.count(1)

    # connection lifecycle

    async def connect(
        self, transport: Transport, user_id=None, connection_id: Optional[str] = None
    ) -> SessionHandle:
        """Register a connection and start its writer task."""
        connection_id = connection_id or uuid.uuid4().hex
        async with self._registry_lock:
            previous = self._connections.get(connection_id)
            handle = SessionHandle(connection_id, next(self._generations))
            conn = _Connection(handle, transport, self.outbox_size, user_id=user_id)
            self._connections[connection_id] = conn
        if previous is not None:
            # id reused before the old session was cleaned up
            await self._teardown(previous, close_transport=True)
        conn.pump = asyncio.create_task(self._pump(conn), name=f"relay-pump-{connection_id}")
        logger.debug(f"Connection {connection_id} registered (generation {handle.generation})")
        return handle

    async def disconnect(self, handle: SessionHandle, close_transport: bool = False) -> None:
        """Forget a connection; later relays never select it."""
        conn = self._lookup(handle)
        if conn is None:
            return
        conn.closed = True
        async with self._registry_lock:
            if self._connections.get(handle.connection_id) is conn:
                del self._connections[handle.connection_id]
        await self._teardown(conn, close_transport=close_transport)
        logger.debug(f"Connection {handle.connection_id} disconnected")

    async def close(self) -> None:
        """Disconnect everything; used at application shutdown."""
        for conn in list(self._connections.values()):
            await self.disconnect(conn.handle, close_transport=True)

    # membership

    async def join(self, handle: SessionHandle, note_id: str) -> JoinResult:
        """Put the connection in the note's group, leaving any other group first."""
        conn = self._lookup(handle)
        if conn is None or conn.closed:
            return JoinResult.UNKNOWN_SESSION

        # leave and join under one registry lock so the connection is never in two groups
        async with self._registry_lock:
            if conn.closed:
                return JoinResult.UNKNOWN_SESSION
            if conn.note_id == note_id:
                return JoinResult.ALREADY_JOINED
            await self._detach(conn)
            group = self._groups.get(note_id)
            if group is None:
                group = self._groups[note_id] = _Group(note_id)
            async with group.lock:
                group.members[handle.connection_id] = conn
                conn.note_id = note_id

        logger.info(f"Connection {handle.connection_id} joined note {note_id}")
        return JoinResult.JOINED

    async def leave(self, handle: SessionHandle) -> Optional[str]:
        """Leave the current group; returns the note id that was left."""
        conn = self._lookup(handle)
        if conn is None:
            return None
        async with self._registry_lock:
            note_id = conn.note_id
            if note_id is None:
                return None
            await self._detach(conn)
        logger.info(f"Connection {handle.connection_id} left note {note_id}")
        return note_id

    def current_note(self, handle: SessionHandle) -> Optional[str]:
        conn = self._lookup(handle)
        return conn.note_id if conn is not None else None

    def group_size(self, note_id: str) -> int:
        group = self._groups.get(note_id)
        return len(group.members) if group is not None else 0

    def has_group(self, note_id: str) -> bool:
        return note_id in self._groups

    # delivery

    async def relay(self, handle: SessionHandle, note_id: str, payload: Any) -> RelayResult:
        """Forward a payload to every other member of the note's group.

        Never echoes to the sender and never waits for a receiver. Receivers
        whose outbound queue is full are counted as dropped and evicted once
        they reach the failed-forward limit.
        """
        sender = self._lookup(handle)
        if sender is None or sender.closed:
            return RelayResult()
        group = self._groups.get(note_id)
        if group is None:
            return RelayResult()

        delivered = dropped = 0
        evicted = []
        async with group.lock:
            for member in group.members.values():
                if member is sender or member.closed:
                    continue
                try:
                    member.outbox.put_nowait(payload)
                except asyncio.QueueFull:
                    dropped += 1
                    member.failed_forwards += 1
                    logger.warning(
                        f"Dropped update for connection {member.handle.connection_id} "
                        f"on note {note_id}: outbound queue full"
                    )
                    if member.failed_forwards >= self.max_failed_forwards:
                        evicted.append(member.handle)
                else:
                    delivered += 1

        for member_handle in evicted:
            logger.warning(f"Evicting slow connection {member_handle.connection_id}")
            await self.disconnect(member_handle, close_transport=True)

        return RelayResult(delivered=delivered, dropped=dropped)

    def send(self, handle: SessionHandle, message: Any) -> bool:
        """Queue a message for one connection (acks, errors)."""
        conn = self._lookup(handle)
        if conn is None or conn.closed:
            return False
        try:
            conn.outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for connection {handle.connection_id}")
            return False
        return True

    async def flush(self) -> None:
        """Wait until every queued message has been written out."""
        await asyncio.gather(*(conn.outbox.join() for conn in list(self._connections.values())))

    def stats(self) -> Dict[str, int]:
        return {
            "connections": len(self._connections),
            "groups": len(self._groups),
            "members": sum(len(group.members) for group in self._groups.values()),
        }

    # internals

    def _lookup(self, handle: SessionHandle) -> Optional[_Connection]:
        conn = self._connections.get(handle.connection_id)
        if conn is None or conn.handle != handle:
            return None
        return conn

    async def _remove_from_group(self, conn: _Connection) -> None:
        async with self._registry_lock:
            await self._detach(conn)

    async def _detach(self, conn: _Connection) -> None:
        # caller holds the registry lock
        note_id = conn.note_id
        group = self._groups.get(note_id) if note_id is not None else None
        if group is None:
            conn.note_id = None
            return
        async with group.lock:
            if group.members.get(conn.handle.connection_id) is conn:
                del group.members[conn.handle.connection_id]
            conn.note_id = None
            if not group.members:
                del self._groups[note_id]
                logger.debug(f"Group for note {note_id} removed")

    async def _teardown(self, conn: _Connection, close_transport: bool) -> None:
        conn.closed = True
        await self._remove_from_group(conn)

        pump = conn.pump
        if pump is not None and pump is not asyncio.current_task():
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)

        # release anyone waiting in flush()
        while not conn.outbox.empty():
            conn.outbox.get_nowait()
            conn.outbox.task_done()

        if close_transport:
            try:
                await conn.transport.close()
            except Exception as e:
                logger.debug(f"Closing transport for {conn.handle.connection_id} failed: {e}")

    async def _pump(self, conn: _Connection) -> None:
        while True:
            message = await conn.outbox.get()
            try:
                await conn.transport.send_json(message)
            except Exception as e:
                logger.info(f"Send to connection {conn.handle.connection_id} failed: {e}")
                break
            finally:
                conn.outbox.task_done()
        await self.disconnect(conn.handle)
