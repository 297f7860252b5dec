from __future__ import annotations

import json
from typing import Any
from urllib import error, parse, request

DEFAULT_BASE_URL = "https://api.ekispert.jp/v1/json"


class UpstreamError(RuntimeError):
    pass


class StationNotFoundError(LookupError):
    def __init__(self, station_name: str) -> None:
        super().__init__(f"station not found: {station_name}")
        self.station_name = station_name


class OperatorNotFoundError(LookupError):
    pass


class EkispertClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_sec: float = 10.0,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout_sec = float(timeout_sec)

    def get_result_set(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET ``path`` and return the ``ResultSet`` object of the response."""
        payload = self._get_json(path, params)
        result_set = payload.get("ResultSet") if isinstance(payload, dict) else None
        if not isinstance(result_set, dict):
            raise UpstreamError(f"ekispert api error: ResultSet missing path={path}")
        if "Error" in result_set:
            raise UpstreamError(f"ekispert api error: path={path} detail={result_set['Error']}")
        return result_set

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        if not self.api_key:
            raise UpstreamError("ekispert.api_key is required")
        query = {"key": self.api_key}
        for key, value in params.items():
            if value is None:
                continue
            query[key] = _param_text(value)
        url = f"{self.base_url}{path}?{parse.urlencode(query)}"
        req = request.Request(url=url, method="GET")
        req.add_header("Accept", "application/json")
        try:
            with request.urlopen(req, timeout=self.timeout_sec) as resp:
                body = resp.read()
        except error.HTTPError as exc:
            detail = ""
            try:
                detail = exc.read().decode("utf-8", errors="ignore")
            except Exception:
                pass
            raise UpstreamError(f"ekispert api error: status={exc.code} path={path} body={detail}") from exc
        except error.URLError as exc:
            raise UpstreamError(f"ekispert api connection error: {exc}") from exc
        except TimeoutError as exc:
            raise UpstreamError(f"ekispert api timeout: path={path}") from exc

        try:
            return json.loads(body.decode("utf-8"))
        except ValueError as exc:
            raise UpstreamError(f"ekispert api returned invalid json: path={path}") from exc


def _param_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
