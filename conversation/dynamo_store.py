from __future__ import annotations

import json
from typing import Any

from conversation.models import Session
from conversation.session_store_interface import SessionStoreProtocol
from conversation.state_machine import coerce_state
from core.models import utc_now_iso

try:
    import boto3  # type: ignore
except Exception as exc:  # pragma: no cover - import guard for local envs
    boto3 = None
    _BOTO3_IMPORT_ERROR = exc
else:
    _BOTO3_IMPORT_ERROR = None


class DynamoSessionStore(SessionStoreProtocol):
    def __init__(
        self,
        *,
        region_name: str | None = None,
        table_prefix: str = "noritetsu",
        sessions_table_name: str | None = None,
        dynamodb_resource: Any | None = None,
    ) -> None:
        if dynamodb_resource is None and boto3 is None:
            raise RuntimeError(f"boto3 is required for DynamoSessionStore: {_BOTO3_IMPORT_ERROR}")
        normalized_prefix = (table_prefix or "noritetsu").strip()
        self._ddb = dynamodb_resource or boto3.resource("dynamodb", region_name=region_name)
        self._sessions_table = self._ddb.Table(sessions_table_name or f"{normalized_prefix}-sessions")

    def get_session(self, line_user_id: str) -> Session | None:
        row = self._sessions_table.get_item(Key={"line_user_id": line_user_id}).get("Item")
        if not row:
            return None
        fields = _load_json(row.get("fields_json"))
        return Session(
            line_user_id=str(row["line_user_id"]),
            state=coerce_state(row.get("state")),
            fields={str(k): str(v) for k, v in fields.items()} if isinstance(fields, dict) else {},
            created_at=str(row.get("created_at", "")),
            updated_at=str(row.get("updated_at", "")),
        )

    def save_session(self, session: Session) -> None:
        session.updated_at = utc_now_iso()
        self._sessions_table.put_item(
            Item={
                "line_user_id": session.line_user_id,
                "state": session.state.value,
                "fields_json": json.dumps(session.fields, ensure_ascii=False),
                "created_at": session.created_at,
                "updated_at": session.updated_at,
            }
        )

    def delete_session(self, line_user_id: str) -> None:
        self._sessions_table.delete_item(Key={"line_user_id": line_user_id})


def _load_json(value: Any) -> Any:
    if not value:
        return {}
    try:
        return json.loads(str(value))
    except ValueError:
        return {}
