from __future__ import annotations

import json
import unittest
from unittest import mock

from app.config import DEFAULT_CONFIG, deep_merge
from conversation.dynamo_store import DynamoSessionStore
from conversation.memory_store import InMemorySessionStore
from conversation.models import Session
from conversation.store_factory import create_session_store
from core.enums import ConversationState, FieldName


class InMemorySessionStoreTest(unittest.TestCase):
    def test_save_and_get_are_copies(self) -> None:
        store = InMemorySessionStore()
        session = Session(line_user_id="U1", state=ConversationState.AWAIT_DATE, fields={FieldName.DEPARTURE: "東京"})
        store.save_session(session)

        loaded = store.get_session("U1")
        loaded.fields[FieldName.DESTINATION] = "大阪"

        self.assertEqual(store.get_session("U1").fields, {FieldName.DEPARTURE: "東京"})
        self.assertIsNone(store.get_session("U2"))
        store.delete_session("U1")
        self.assertIsNone(store.get_session("U1"))

    def test_reset_discards_fields(self) -> None:
        session = Session(line_user_id="U1", state=ConversationState.AWAIT_LINE_CHOICE, fields={"date": "2023-03-08"})
        session.reset()
        self.assertEqual(session.state, ConversationState.AWAIT_DEPARTURE)
        self.assertEqual(session.fields, {})


class DynamoSessionStoreTest(unittest.TestCase):
    def _store(self) -> tuple[DynamoSessionStore, mock.Mock]:
        resource = mock.Mock()
        table = mock.Mock()
        resource.Table.return_value = table
        store = DynamoSessionStore(table_prefix="test", dynamodb_resource=resource)
        resource.Table.assert_called_once_with("test-sessions")
        return store, table

    def test_save_session_serializes_fields(self) -> None:
        store, table = self._store()
        store.save_session(Session(line_user_id="U1", state=ConversationState.AWAIT_DATE, fields={"departure": "東京"}))

        item = table.put_item.call_args.kwargs["Item"]
        self.assertEqual(item["line_user_id"], "U1")
        self.assertEqual(item["state"], "AWAIT_DATE")
        self.assertEqual(json.loads(item["fields_json"]), {"departure": "東京"})

    def test_get_session(self) -> None:
        store, table = self._store()
        table.get_item.return_value = {
            "Item": {
                "line_user_id": "U1",
                "state": "AWAIT_LINE_CHOICE",
                "fields_json": json.dumps({"selected_operator": "JR東日本"}, ensure_ascii=False),
                "created_at": "2026-01-01T00:00:00+00:00",
                "updated_at": "2026-01-01T00:00:00+00:00",
            }
        }
        session = store.get_session("U1")
        self.assertEqual(session.state, ConversationState.AWAIT_LINE_CHOICE)
        self.assertEqual(session.fields, {"selected_operator": "JR東日本"})

        table.get_item.return_value = {}
        self.assertIsNone(store.get_session("U2"))


class SessionStoreFactoryTest(unittest.TestCase):
    def test_default_backend_is_memory(self) -> None:
        self.assertIsInstance(create_session_store(DEFAULT_CONFIG), InMemorySessionStore)

    def test_unknown_backend(self) -> None:
        config = deep_merge(DEFAULT_CONFIG, {"conversation": {"session_store": {"backend": "redis"}}})
        with self.assertRaises(ValueError):
            create_session_store(config)


if __name__ == "__main__":
    unittest.main()
