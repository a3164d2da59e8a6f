from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Interface de temporizador no estilo Tk (`after` / `after_cancel`)."""

    def after(self, ms: int, func: Callable[[], None]) -> Any: ...

    def after_cancel(self, id: Any) -> None: ...


class SearchDebouncer:
    """
    Guarda o texto digitado na hora e só repassa o último valor depois de
    `delay_ms` sem novas teclas. Existe no máximo um temporizador pendente.
    """

    def __init__(self, scheduler: Scheduler, commit: Callable[[str], None], delay_ms: int = 300) -> None:
        self._scheduler = scheduler
        self._commit = commit
        self.delay_ms = max(0, int(delay_ms))
        self.input_value: str = ""
        self._pending_id: Any = None

    @property
    def is_searching(self) -> bool:
        return self._pending_id is not None

    def busy(self, loading: bool) -> bool:
        return self.is_searching or bool(loading)

    def on_input(self, value: str) -> None:
        self.input_value = value or ""
        self._cancel_timer()
        self._pending_id = self._scheduler.after(self.delay_ms, self._fire)

    def flush(self) -> None:
        if self._pending_id is None:
            return
        self._cancel_timer()
        self._emit()

    def cancel(self) -> None:
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._pending_id is not None:
            self._scheduler.after_cancel(self._pending_id)
            self._pending_id = None

    def _fire(self) -> None:
        self._pending_id = None
        self._emit()

    def _emit(self) -> None:
        logger.debug("Busca confirmada: %r", self.input_value)
        self._commit(self.input_value)
