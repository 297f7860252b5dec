from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "line_messaging": {
        "enabled": True,
        "channel_secret": None,
        "channel_access_token": None,
        "webhook_path": "/webhook",
        "api_base_url": "https://api.line.me",
        "timeout_sec": 10,
        "allowed_user_ids": [],
    },
    "ekispert": {
        "api_key": None,
        "base_url": "https://api.ekispert.jp/v1/json",
        "timeout_sec": 10,
        "answer_count": 10,
    },
    "conversation": {
        "start_keyword": "出発",
        "max_results": 3,
        "max_workers": 8,
        "session_store": {
            "backend": "memory",
            "dynamodb": {
                "region": None,
                "table_prefix": "noritetsu",
                "sessions_table": None,
            },
        },
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
    },
}

ENV_OVERRIDES = {
    "LINE_CHANNEL_SECRET": ("line_messaging", "channel_secret"),
    "LINE_CHANNEL_ACCESS_TOKEN": ("line_messaging", "channel_access_token"),
    "EKISPERT_API_KEY": ("ekispert", "api_key"),
    "PORT": ("server", "port"),
    "SESSION_STORE_BACKEND": ("conversation", "session_store", "backend"),
    "DDB_REGION": ("conversation", "session_store", "dynamodb", "region"),
    "DDB_SESSIONS_TABLE": ("conversation", "session_store", "dynamodb", "sessions_table"),
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | None = None) -> dict[str, Any]:
    if not config_path:
        return deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        return deepcopy(DEFAULT_CONFIG)

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return deepcopy(DEFAULT_CONFIG)

    if path.suffix.lower() == ".json":
        import json

        loaded = json.loads(text)
    else:
        import yaml

        loaded = yaml.safe_load(text)
    data = loaded if isinstance(loaded, dict) else {}
    return deep_merge(deepcopy(DEFAULT_CONFIG), data)


def apply_env_overrides(config: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    for env_name, keys in ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is None or value == "":
            continue
        target = config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value
    return config


def load_runtime_config(config_path: str | None = None) -> dict[str, Any]:
    return apply_env_overrides(load_config(config_path))
