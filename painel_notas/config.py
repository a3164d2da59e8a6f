from __future__ import annotations

from painel_notas.core.settings import get_setting


def api_base_url() -> str:
    return str(get_setting("api_base_url"))


def api_timeout() -> float:
    return float(get_setting("api_timeout"))


def api_retries() -> int:
    return int(get_setting("api_retries"))


def page_size() -> int:
    return int(get_setting("page_size"))


def search_debounce_ms() -> int:
    return int(get_setting("search_debounce_ms"))


def poll_interval_ms() -> int:
    return int(get_setting("poll_interval_ms"))


def appearance_mode() -> str:
    return str(get_setting("appearance_mode"))
