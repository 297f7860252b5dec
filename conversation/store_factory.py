from __future__ import annotations

from typing import Any

from conversation.dynamo_store import DynamoSessionStore
from conversation.memory_store import InMemorySessionStore
from conversation.session_store_interface import SessionStoreProtocol


def create_session_store(config: dict[str, Any]) -> SessionStoreProtocol:
    store_conf = config.get("conversation", {}).get("session_store", {})
    backend = str(store_conf.get("backend", "memory") or "memory").strip().lower()

    if backend == "dynamodb":
        ddb_conf = store_conf.get("dynamodb", {}) if isinstance(store_conf, dict) else {}
        return DynamoSessionStore(
            region_name=_as_optional_str(ddb_conf.get("region")),
            table_prefix=str(ddb_conf.get("table_prefix", "noritetsu")),
            sessions_table_name=_as_optional_str(ddb_conf.get("sessions_table")),
        )
    if backend != "memory":
        raise ValueError(f"unknown session store backend: {backend}")
    return InMemorySessionStore()


def _as_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None
