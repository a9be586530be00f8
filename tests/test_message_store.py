"""Unit tests for the message store backends."""

import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from chatrelay.models.models import Message
from chatrelay.services.message_store import (
    InMemoryMessageStore,
    MessageStoreError,
    SQLMessageStore,
    build_message_store,
)


class TestInMemoryMessageStore(unittest.IsolatedAsyncioTestCase):

    async def test_save_and_list_by_room(self):
        store = InMemoryMessageStore()
        first = Message.create(room_id="r1", sender_id="u1", content="one")
        second = Message.create(room_id="r1", sender_id="u2", content="two")
        other = Message.create(room_id="r2", sender_id="u1", content="elsewhere")

        for message in (first, second, other):
            await store.save(message)

        self.assertEqual(await store.list_by_room("r1"), [first, second])
        self.assertEqual(await store.list_by_room("r2"), [other])

    async def test_unknown_room_is_empty(self):
        store = InMemoryMessageStore()
        self.assertEqual(await store.list_by_room("nobody-here"), [])


class TestSQLMessageStore(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self.tmpdir.name, "chat.db")
        self.store = SQLMessageStore(f"sqlite+aiosqlite:///{path}")
        await self.store.init()

    async def asyncTearDown(self):
        await self.store.close()
        self.tmpdir.cleanup()

    async def test_round_trip_ordered_by_creation(self):
        now = datetime.now(timezone.utc)
        later = Message(room_id="r1", sender_id="GEMINI", content="reply", created_at=now + timedelta(seconds=1))
        earlier = Message(room_id="r1", sender_id="u1", content="hi", created_at=now)
        await self.store.save(later)
        await self.store.save(earlier)
        await self.store.save(Message.create(room_id="r2", sender_id="u1", content="other room"))

        messages = await self.store.list_by_room("r1")

        self.assertEqual([m.id for m in messages], [earlier.id, later.id])
        self.assertEqual(messages[0].content, "hi")
        self.assertEqual(messages[0].created_at, earlier.created_at)
        self.assertIsNotNone(messages[0].created_at.tzinfo)

    async def test_duplicate_id_raises_store_error(self):
        message = Message.create(room_id="r1", sender_id="u1", content="hi")
        await self.store.save(message)

        with self.assertRaises(MessageStoreError):
            await self.store.save(message)

    async def test_unknown_room_is_empty(self):
        self.assertEqual(await self.store.list_by_room("missing"), [])


class TestBuildMessageStore(unittest.TestCase):

    def test_memory_backend(self):
        store = build_message_store(SimpleNamespace(MESSAGE_STORE="memory", DATABASE_URL=""))
        self.assertIsInstance(store, InMemoryMessageStore)

    def test_sql_backend(self):
        store = build_message_store(
            SimpleNamespace(MESSAGE_STORE="sql", DATABASE_URL="sqlite+aiosqlite:///./unused.db")
        )
        self.assertIsInstance(store, SQLMessageStore)

    def test_unknown_backend_falls_back_to_memory(self):
        store = build_message_store(SimpleNamespace(MESSAGE_STORE="cassandra", DATABASE_URL=""))
        self.assertIsInstance(store, InMemoryMessageStore)


if __name__ == "__main__":
    unittest.main()
