from __future__ import annotations

import json
import logging
import os
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)
_SETTINGS_LOCK = threading.Lock()
_SETTINGS_CACHE: dict[str, Any] | None = None

CONFIG_DIR_ENV = "PAINEL_NOTAS_CONFIG_DIR"

DEFAULT_SETTINGS: dict[str, Any] = {
    "api_base_url": "http://localhost:8000/api",
    "api_timeout": 10.0,
    "api_retries": 2,
    "page_size": 10,
    "search_debounce_ms": 300,
    "poll_interval_ms": 100,
    "appearance_mode": "Dark",
}


def _as_int(value: Any, default: int, low: int, high: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _sanitize(settings: dict[str, Any]) -> dict[str, Any]:
    out = deepcopy(settings)

    base_url = str(out.get("api_base_url") or "").strip().rstrip("/")
    out["api_base_url"] = base_url or DEFAULT_SETTINGS["api_base_url"]

    try:
        timeout = float(out.get("api_timeout"))
    except (TypeError, ValueError):
        timeout = DEFAULT_SETTINGS["api_timeout"]
    out["api_timeout"] = timeout if timeout > 0 else DEFAULT_SETTINGS["api_timeout"]

    out["api_retries"] = _as_int(out.get("api_retries"), DEFAULT_SETTINGS["api_retries"], 0, 5)
    out["page_size"] = _as_int(out.get("page_size"), DEFAULT_SETTINGS["page_size"], 1, 200)
    out["search_debounce_ms"] = _as_int(
        out.get("search_debounce_ms"), DEFAULT_SETTINGS["search_debounce_ms"], 0, 5000
    )
    out["poll_interval_ms"] = _as_int(
        out.get("poll_interval_ms"), DEFAULT_SETTINGS["poll_interval_ms"], 20, 2000
    )

    if out.get("appearance_mode") not in {"Light", "Dark", "System"}:
        out["appearance_mode"] = DEFAULT_SETTINGS["appearance_mode"]

    return out


def config_dir() -> Path:
    env_dir = os.getenv(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".painel_notas"


def settings_path() -> Path:
    return config_dir() / "settings.json"


def get_settings() -> dict[str, Any]:
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if _SETTINGS_CACHE is not None:
            return deepcopy(_SETTINGS_CACHE)

        settings = deepcopy(DEFAULT_SETTINGS)
        path = settings_path()
        try:
            if path.exists():
                raw = json.loads(path.read_text(encoding="utf-8"))
                if isinstance(raw, dict):
                    settings.update(raw)
        except Exception:
            logger.warning("Não foi possível ler settings.json, usando padrões", exc_info=True)

        _SETTINGS_CACHE = _sanitize(settings)
        return deepcopy(_SETTINGS_CACHE)


def get_setting(key: str, default: Any = None) -> Any:
    settings = get_settings()
    if default is None and key in DEFAULT_SETTINGS:
        default = DEFAULT_SETTINGS[key]
    return settings.get(key, default)


def save_settings(new_values: dict[str, Any]) -> dict[str, Any]:
    global _SETTINGS_CACHE
    current = get_settings()
    current.update(new_values or {})
    final_settings = _sanitize(current)
    path = settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(final_settings, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    except Exception:
        logger.warning("Não foi possível salvar settings.json", exc_info=True)
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = deepcopy(final_settings)
    return final_settings


def reset_settings_cache() -> None:
    """Descarta o cache em memória; a próxima leitura volta ao disco."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None
