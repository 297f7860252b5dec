from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from conversation.conversation_service import ConversationService
from conversation.session_store_interface import SessionStoreProtocol
from conversation.store_factory import create_session_store
from ekispert.client import EkispertClient
from ekispert.railways import RailwayDirectory
from ekispert.ranking import MAX_RESULTS
from ekispert.route_search import SEARCH_ANSWER_COUNT, RouteSearchClient
from ekispert.stations import StationResolver
from line_messaging import message_templates
from line_messaging.messaging_client import LineMessagingClient
from line_messaging.signature import verify_line_signature


class LineWebhookHandler:
    def __init__(
        self,
        config: dict[str, Any],
        messaging_client: LineMessagingClient | None = None,
        ekispert_client: EkispertClient | None = None,
        store: SessionStoreProtocol | None = None,
    ) -> None:
        self.config = config
        self.line_conf = config.get("line_messaging", {})
        self.ekispert_conf = config.get("ekispert", {})
        self.conversation_conf = config.get("conversation", {})
        self.enabled = bool(self.line_conf.get("enabled", True))
        self.channel_secret = str(self.line_conf.get("channel_secret", "") or "").strip()
        self.timeout_sec = float(self.line_conf.get("timeout_sec", 10))
        self.max_workers = max(1, int(self.conversation_conf.get("max_workers", 8)))
        allowed = self.line_conf.get("allowed_user_ids", [])
        self.allowed_user_ids = {
            str(user_id).strip()
            for user_id in (allowed if isinstance(allowed, list) else [])
            if str(user_id).strip()
        }

        self.messaging_client = messaging_client or LineMessagingClient(
            channel_access_token=str(self.line_conf.get("channel_access_token", "") or ""),
            api_base_url=str(self.line_conf.get("api_base_url", "https://api.line.me")),
            timeout_sec=self.timeout_sec,
        )
        ekispert = ekispert_client or EkispertClient(
            api_key=str(self.ekispert_conf.get("api_key", "") or ""),
            base_url=str(self.ekispert_conf.get("base_url", "") or ""),
            timeout_sec=float(self.ekispert_conf.get("timeout_sec", 10)),
        )
        self.conversation_service = ConversationService(
            store=store if store is not None else create_session_store(config),
            station_resolver=StationResolver(ekispert),
            railway_directory=RailwayDirectory(ekispert),
            route_search=RouteSearchClient(
                ekispert,
                answer_count=int(self.ekispert_conf.get("answer_count", SEARCH_ANSWER_COUNT)),
                max_results=int(self.conversation_conf.get("max_results", MAX_RESULTS)),
            ),
            start_keyword=str(self.conversation_conf.get("start_keyword") or message_templates.DEFAULT_START_KEYWORD),
        )

    def handle(self, body: bytes, signature: str | None) -> tuple[int, dict[str, Any]]:
        if not self.enabled:
            return 503, {"ok": False, "error": "line_messaging.enabled is false"}
        if not verify_line_signature(self.channel_secret, body, signature):
            return 401, {"ok": False, "error": "invalid signature"}

        try:
            payload = json.loads(body.decode("utf-8"))
        except Exception:
            return 400, {"ok": False, "error": "invalid json payload"}
        events = payload.get("events", []) if isinstance(payload, dict) else None
        if not isinstance(events, list):
            return 400, {"ok": False, "error": "events must be list"}

        handled, skipped, errors = self.handle_events(events)
        if errors:
            print(f"webhook-batch-failed events={len(events)} errors={len(errors)}")
            return 500, {"ok": False, "handled": handled, "skipped": skipped, "errors": errors}
        return 200, {"ok": True, "handled": handled, "skipped": skipped, "errors": []}

    def handle_events(self, events: list[Any]) -> tuple[int, int, list[str]]:
        """Run a batch: one user's events in arrival order, different users concurrently."""
        handled = 0
        skipped = 0
        errors: list[str] = []
        if not events:
            return handled, skipped, errors

        groups = _group_by_user(events)
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(groups))) as executor:
            futures = [executor.submit(self._handle_user_events, group) for group in groups]
            for future in futures:
                group_handled, group_skipped, group_errors = future.result()
                handled += group_handled
                skipped += group_skipped
                errors.extend(group_errors)
        return handled, skipped, errors

    def _handle_user_events(self, events: list[Any]) -> tuple[int, int, list[str]]:
        handled = 0
        skipped = 0
        errors: list[str] = []
        for event in events:
            try:
                consumed = self._handle_event(event)
            except Exception as exc:  # noqa: BLE001
                print(f"webhook-event-failed error={exc}")
                errors.append(str(exc))
                continue
            if consumed:
                handled += 1
            else:
                skipped += 1
        return handled, skipped, errors

    def _handle_event(self, event: Any) -> bool:
        if not isinstance(event, dict):
            return False
        event_type = str(event.get("type", "") or "").lower()
        message = event.get("message", {})
        if event_type != "message" or not isinstance(message, dict):
            return False
        if str(message.get("type", "") or "").lower() != "text":
            return False

        reply_token = str(event.get("replyToken", "") or "").strip()
        line_user_id = _source_user_id(event)
        source = event.get("source")
        if not isinstance(source, dict) or source.get("type") != "user" or not line_user_id:
            self.messaging_client.send([{"type": "text", "text": "1:1トークのみ対応しています。"}], reply_token=reply_token)
            return True

        if self.allowed_user_ids and line_user_id not in self.allowed_user_ids:
            self.messaging_client.send([{"type": "text", "text": "このアカウントは現在利用できません。"}], reply_token=reply_token)
            return True

        text = str(message.get("text", "") or "")
        messages = self.conversation_service.handle_text(line_user_id, text)
        self.messaging_client.send(messages, reply_token=reply_token, line_user_id=line_user_id)
        return True


def _source_user_id(event: Any) -> str:
    source = event.get("source") if isinstance(event, dict) else None
    if not isinstance(source, dict):
        return ""
    return str(source.get("userId", "") or "").strip()


def _group_by_user(events: list[Any]) -> list[list[Any]]:
    # Events without a user id cannot race on a session, so each gets its own group.
    groups: dict[str, list[Any]] = {}
    for index, event in enumerate(events):
        key = _source_user_id(event) or f"#{index}"
        groups.setdefault(key, []).append(event)
    return list(groups.values())
