from __future__ import annotations

import json
from typing import Any
from urllib import error, request

MAX_MESSAGES_PER_REQUEST = 5
REPLY_PATH = "/v2/bot/message/reply"
PUSH_PATH = "/v2/bot/message/push"


class LineMessagingApiError(RuntimeError):
    pass


class LineMessagingClient:
    """Delivers the bot's answers through the LINE Messaging API.

    A reply token belongs to one inbound event and is accepted once, for a
    short time. `send` tries it first and pushes to the user when LINE
    rejects the reply.
    """

    def __init__(
        self,
        channel_access_token: str,
        api_base_url: str = "https://api.line.me",
        timeout_sec: float = 10.0,
    ) -> None:
        self.channel_access_token = (channel_access_token or "").strip()
        self.api_base_url = (api_base_url or "https://api.line.me").rstrip("/")
        self.timeout_sec = float(timeout_sec)

    def send(self, messages: list[dict[str, Any]], reply_token: str = "", line_user_id: str = "") -> str:
        """Return the channel that delivered: "reply", "push", or "" for nothing to send."""
        batch = list(messages or [])[:MAX_MESSAGES_PER_REQUEST]
        if not batch:
            return ""
        token = (reply_token or "").strip()
        user_id = (line_user_id or "").strip()
        if token:
            try:
                self.reply(token, batch)
                return "reply"
            except LineMessagingApiError as exc:
                if not user_id:
                    raise
                print(f"line-reply-failed fallback-to-push line_user_id={user_id} error={exc}")
        if not user_id:
            raise LineMessagingApiError("neither reply token nor push target given")
        self.push(user_id, batch)
        return "push"

    def reply(self, reply_token: str, messages: list[dict[str, Any]]) -> None:
        self._post_json(REPLY_PATH, {"replyToken": reply_token, "messages": messages[:MAX_MESSAGES_PER_REQUEST]})

    def push(self, to: str, messages: list[dict[str, Any]]) -> None:
        if not (to or "").strip():
            raise LineMessagingApiError("push target is empty")
        self._post_json(PUSH_PATH, {"to": to.strip(), "messages": messages[:MAX_MESSAGES_PER_REQUEST]})

    def _post_json(self, path: str, payload: dict[str, Any]) -> None:
        if not self.channel_access_token:
            raise LineMessagingApiError("line_messaging.channel_access_token is required")
        req = request.Request(
            url=f"{self.api_base_url}{path}",
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            method="POST",
            headers={
                "Content-Type": "application/json; charset=utf-8",
                "Authorization": f"Bearer {self.channel_access_token}",
            },
        )
        try:
            with request.urlopen(req, timeout=self.timeout_sec) as resp:
                status = int(getattr(resp, "status", 200))
        except error.HTTPError as exc:
            raise LineMessagingApiError(f"line api error: path={path} status={exc.code} body={_error_body(exc)}") from exc
        except error.URLError as exc:
            raise LineMessagingApiError(f"line api connection error: path={path} reason={exc.reason}") from exc
        if status >= 400:
            raise LineMessagingApiError(f"line api error: path={path} status={status}")


def _error_body(exc: error.HTTPError) -> str:
    try:
        return exc.read().decode("utf-8", errors="ignore")
    except OSError:
        return ""
