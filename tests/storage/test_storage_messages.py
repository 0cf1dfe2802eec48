"""Message storage: connection requirement, ordering, read flag."""

from __future__ import annotations

import pytest

from stayx.exceptions import NotConnectedError
from stayx.storage.schemas import ACCEPTED, REJECTED, ConnectionCreate, MessageCreate


async def _connect(storage, sender, receiver, status=ACCEPTED):
    conn = await storage.create_connection(ConnectionCreate(sender_id=sender.id, receiver_id=receiver.id))
    return await storage.update_connection(conn.id, status)


class TestCreateMessage:
    async def test_requires_connection(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        with pytest.raises(NotConnectedError):
            await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="hi"))

    async def test_pending_connection_is_not_enough(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await storage.create_connection(ConnectionCreate(sender_id=alice.id, receiver_id=bob.id))
        with pytest.raises(NotConnectedError):
            await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="hi"))

    async def test_rejected_connection_is_not_enough(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _connect(storage, alice, bob, REJECTED)
        with pytest.raises(NotConnectedError):
            await storage.create_message(MessageCreate(sender_id=bob.id, receiver_id=alice.id, content="hi"))

    async def test_accepted_connection_both_directions(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _connect(storage, alice, bob)

        first = await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="hi"))
        reply = await storage.create_message(MessageCreate(sender_id=bob.id, receiver_id=alice.id, content="hey"))

        assert first.read is False
        assert first.content == "hi"
        assert reply.id != first.id
        assert await storage.get_message(first.id) == first


class TestConversation:
    async def test_oldest_first_between_pair_only(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        await _connect(storage, alice, bob)
        await _connect(storage, alice, carol)

        m1 = await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="1"))
        await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=carol.id, content="x"))
        m2 = await storage.create_message(MessageCreate(sender_id=bob.id, receiver_id=alice.id, content="2"))
        m3 = await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="3"))

        thread = await storage.get_conversation(bob.id, alice.id)
        assert [m.id for m in thread] == [m1.id, m2.id, m3.id]

    async def test_limit_keeps_most_recent(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _connect(storage, alice, bob)
        sent = [
            await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content=str(i)))
            for i in range(5)
        ]

        thread = await storage.get_conversation(alice.id, bob.id, limit=2)
        assert [m.id for m in thread] == [sent[3].id, sent[4].id]
        assert await storage.get_conversation(alice.id, bob.id, limit=0) == []

    async def test_user_messages_newest_first(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _connect(storage, alice, bob)
        m1 = await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="1"))
        m2 = await storage.create_message(MessageCreate(sender_id=bob.id, receiver_id=alice.id, content="2"))

        assert [m.id for m in await storage.get_user_messages(alice.id)] == [m2.id, m1.id]
        assert [m.id for m in await storage.get_user_messages(bob.id, limit=1)] == [m2.id]


class TestMarkAsRead:
    async def test_sets_flag_and_persists(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _connect(storage, alice, bob)
        message = await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="hi"))

        marked = await storage.mark_message_as_read(message.id)

        assert marked.read is True
        assert marked.content == "hi"
        assert (await storage.get_message(message.id)).read is True

    async def test_idempotent(self, storage, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _connect(storage, alice, bob)
        message = await storage.create_message(MessageCreate(sender_id=alice.id, receiver_id=bob.id, content="hi"))
        await storage.mark_message_as_read(message.id)
        assert (await storage.mark_message_as_read(message.id)).read is True

    async def test_missing_message_returns_none(self, storage):
        assert await storage.mark_message_as_read(77) is None
