"""
Unit tests for the in-memory collaboration relay.
"""

import asyncio

import pytest

from notesync.realtime import CollaborationRelay, JoinResult, SessionHandle


class FakeTransport:
    """Records what the relay writes; can block or fail on send."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.closed = False
        self.fail = fail
        self.gate = None

    async def send_json(self, data):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.closed = True


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
async def relay():
    relay = CollaborationRelay(outbox_size=8)
    yield relay
    await relay.close()


async def connect(relay, note_id=None):
    transport = FakeTransport()
    handle = await relay.connect(transport)
    if note_id is not None:
        await relay.join(handle, note_id)
    return handle, transport


class TestMembership:
    async def test_join_is_idempotent(self, relay):
        handle, _ = await connect(relay)

        assert await relay.join(handle, "n1") == JoinResult.JOINED
        assert await relay.join(handle, "n1") == JoinResult.ALREADY_JOINED
        assert relay.group_size("n1") == 1

    async def test_joining_another_note_leaves_the_first(self, relay):
        handle, _ = await connect(relay, "n1")

        await relay.join(handle, "n2")

        assert relay.current_note(handle) == "n2"
        assert not relay.has_group("n1")
        assert relay.group_size("n2") == 1

    async def test_leave_removes_empty_group(self, relay):
        handle, _ = await connect(relay, "n1")

        assert await relay.leave(handle) == "n1"
        assert await relay.leave(handle) is None
        assert not relay.has_group("n1")

    async def test_disconnect_removes_membership(self, relay):
        first, _ = await connect(relay, "n1")
        second, _ = await connect(relay, "n1")

        await relay.disconnect(first)

        assert relay.group_size("n1") == 1
        assert relay.stats() == {"connections": 1, "groups": 1, "members": 1}

        await relay.disconnect(second)
        assert relay.stats() == {"connections": 0, "groups": 0, "members": 0}

    async def test_stale_handle_is_ignored(self, relay):
        handle, _ = await connect(relay)
        await relay.disconnect(handle)

        assert await relay.join(handle, "n1") == JoinResult.UNKNOWN_SESSION
        assert relay.send(handle, {"event": "joined"}) is False
        assert not relay.has_group("n1")

    async def test_reused_connection_id_invalidates_old_handle(self, relay):
        old_transport = FakeTransport()
        old = await relay.connect(old_transport, connection_id="abc")
        await relay.join(old, "n1")

        new = await relay.connect(FakeTransport(), connection_id="abc")

        assert new != old
        assert old_transport.closed
        assert relay.current_note(old) is None
        assert await relay.join(old, "n2") == JoinResult.UNKNOWN_SESSION
        assert await relay.join(new, "n1") == JoinResult.JOINED
        # disconnecting the stale handle must not remove the new session
        await relay.disconnect(old)
        assert relay.group_size("n1") == 1

    async def test_forged_handle_is_unknown(self, relay):
        handle, _ = await connect(relay)
        forged = SessionHandle(handle.connection_id, handle.generation + 100)

        assert await relay.join(forged, "n1") == JoinResult.UNKNOWN_SESSION

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            CollaborationRelay(outbox_size=0)
        with pytest.raises(ValueError):
            CollaborationRelay(max_failed_forwards=0)


class TestRelay:
    async def test_no_echo_to_sender(self, relay):
        sender, sender_transport = await connect(relay, "n1")
        _, receiver_transport = await connect(relay, "n1")

        result = await relay.relay(sender, "n1", {"event": "receive-update", "data": {"x": 1}})
        await relay.flush()

        assert result.delivered == 1
        assert result.dropped == 0
        assert receiver_transport.sent == [{"event": "receive-update", "data": {"x": 1}}]
        assert sender_transport.sent == []

    async def test_groups_are_isolated(self, relay):
        sender, _ = await connect(relay, "n1")
        _, same_note = await connect(relay, "n1")
        _, other_note = await connect(relay, "n2")

        await relay.relay(sender, "n1", {"v": 1})
        await relay.flush()

        assert same_note.sent == [{"v": 1}]
        assert other_note.sent == []

    async def test_delivery_order_per_receiver(self, relay):
        sender, _ = await connect(relay, "n1")
        _, receiver = await connect(relay, "n1")

        for i in range(5):
            await relay.relay(sender, "n1", {"seq": i})
        await relay.flush()

        assert [m["seq"] for m in receiver.sent] == [0, 1, 2, 3, 4]

    async def test_no_replay_for_late_joiners(self, relay):
        sender, _ = await connect(relay, "n1")
        await relay.relay(sender, "n1", {"v": 1})

        _, late = await connect(relay, "n1")
        await relay.flush()

        assert late.sent == []

    async def test_relay_to_missing_group(self, relay):
        sender, _ = await connect(relay)

        result = await relay.relay(sender, "nowhere", {"v": 1})

        assert result.delivered == 0

    async def test_disconnected_member_not_selected(self, relay):
        sender, _ = await connect(relay, "n1")
        gone, gone_transport = await connect(relay, "n1")
        await relay.disconnect(gone)

        result = await relay.relay(sender, "n1", {"v": 1})
        await relay.flush()

        assert result.delivered == 0
        assert gone_transport.sent == []

    async def test_send_targets_one_connection(self, relay):
        first, first_transport = await connect(relay, "n1")
        _, second_transport = await connect(relay, "n1")

        assert relay.send(first, {"event": "joined", "noteId": "n1"}) is True
        await relay.flush()

        assert first_transport.sent == [{"event": "joined", "noteId": "n1"}]
        assert second_transport.sent == []


class TestBackpressure:
    async def test_slow_receiver_is_evicted(self):
        relay = CollaborationRelay(outbox_size=1, max_failed_forwards=1)
        sender, _ = await connect(relay, "n1")
        _, fast = await connect(relay, "n1")
        slow_transport = FakeTransport()
        slow_transport.gate = asyncio.Event()
        slow = await relay.connect(slow_transport)
        await relay.join(slow, "n1")

        dropped = 0
        for i in range(3):
            result = await relay.relay(sender, "n1", {"seq": i})
            dropped += result.dropped
            await settle()
            if dropped:
                break

        assert dropped == 1
        assert slow_transport.closed
        assert relay.current_note(slow) is None
        assert relay.group_size("n1") == 2
        # the sender and the other receiver are unaffected
        await relay.flush()
        assert [m["seq"] for m in fast.sent] == list(range(i + 1))

        await relay.close()

    async def test_failed_send_disconnects(self, relay):
        handle = await relay.connect(FakeTransport(fail=True))
        await relay.join(handle, "n1")

        relay.send(handle, {"event": "joined"})
        await settle()

        assert relay.current_note(handle) is None
        assert not relay.has_group("n1")
        assert relay.stats()["connections"] == 0

    async def test_close_disconnects_everyone(self):
        relay = CollaborationRelay()
        _, first = await connect(relay, "n1")
        _, second = await connect(relay, "n2")

        await relay.close()

        assert first.closed and second.closed
        assert relay.stats() == {"connections": 0, "groups": 0, "members": 0}


class TestConcurrency:
    async def test_interleaved_operations_keep_registry_consistent(self):
        relay = CollaborationRelay(outbox_size=1000)
        notes = ("n1", "n2")
        sessions = [await connect(relay) for _ in range(20)]
        dropped = sessions[:8]
        sent_at_disconnect = {}

        async def churn(index, handle):
            for step in range(6):
                note_id = notes[(index + step) % 2] if index % 3 else "n1"
                await relay.join(handle, note_id)
                await relay.relay(handle, note_id, {"from": index, "step": step})
                if step % 2:
                    await relay.leave(handle)
                await asyncio.sleep(0)

        async def drop(index, handle, transport):
            for _ in range(index + 1):
                await asyncio.sleep(0)
            await relay.disconnect(handle)
            sent_at_disconnect[handle] = len(transport.sent)

        await asyncio.gather(
            *(churn(index, handle) for index, (handle, _) in enumerate(sessions)),
            *(drop(index, handle, transport) for index, (handle, transport) in enumerate(dropped)),
        )
        await relay.flush()
        await settle()

        stats = relay.stats()
        live = sessions[len(dropped):]
        assert stats["connections"] == len(live)
        assert stats["members"] == sum(relay.group_size(note_id) for note_id in notes)
        assert stats["members"] == sum(1 for handle, _ in live if relay.current_note(handle))
        for note_id in notes:
            assert relay.has_group(note_id) == (relay.group_size(note_id) > 0)

        for handle, transport in dropped:
            assert relay.current_note(handle) is None
            assert len(transport.sent) == sent_at_disconnect[handle]

        for index, (handle, transport) in enumerate(sessions):
            assert all(message["from"] != index for message in transport.sent)

        await relay.close()
