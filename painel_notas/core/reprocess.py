"""Fluxo de reprocessamento: diálogo de confirmação + uma submissão por vez."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from queue import Empty, Queue

from painel_notas.core.list_state import Spawn, spawn_thread
from painel_notas.core.models import NotaFiscal, ReprocessRequest
from painel_notas.core.notas_utils import can_reprocess, display_obs

logger = logging.getLogger(__name__)

DEFAULT_REPROCESS_REASON = "Solicitação de reprocessamento"


@dataclass(slots=True)
class ReprocessDraft:
    reason: str = DEFAULT_REPROCESS_REASON
    process: str = ""
    notes: str = ""


class ReprocessWorkflow:
    def __init__(self, api, on_success: Callable[[], None] | None = None, spawn: Spawn | None = None) -> None:
        self.api = api
        self.on_success = on_success
        self._spawn = spawn or spawn_thread

        self.dialog_open: bool = False
        self.selected: NotaFiscal | None = None
        self.draft = ReprocessDraft()
        self.in_flight_id: str | None = None
        self.error: str | None = None
        self.message: str | None = None

        self._results: Queue = Queue()
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    # ── CONSULTAS ─────────────────────────────────────────────────────────────
    def is_in_flight(self, nota_id: str | None = None) -> bool:
        if nota_id is None:
            return self.in_flight_id is not None
        return self.in_flight_id == nota_id

    def can_trigger(self, nota: NotaFiscal) -> bool:
        return can_reprocess(nota) and not self.dialog_open and not self.is_in_flight(nota.qive_id)

    # ── DIÁLOGO ───────────────────────────────────────────────────────────────
    def open(self, nota: NotaFiscal) -> bool:
        if not can_reprocess(nota):
            logger.info("Nota %s já está completa; reprocessamento não oferecido", nota.qive_id)
            return False
        if self.in_flight_id is not None:
            return False
        if self.dialog_open:
            # Um diálogo por vez: a nota em revisão não pode ser trocada
            logger.debug("Diálogo de reprocessamento já aberto para %s", self.selected and self.selected.qive_id)
            return False

        obs = display_obs(nota)
        self.selected = nota
        self.draft = ReprocessDraft(
            reason=DEFAULT_REPROCESS_REASON,
            process=(nota.info or "").strip(),
            notes="" if obs == "-" else obs,
        )
        self.error = None
        self.message = None
        self.dialog_open = True
        self._notify()
        return True

    def update(self, reason: str | None = None, process: str | None = None, notes: str | None = None) -> None:
        if not self.dialog_open or self.in_flight_id is not None:
            return
        if reason is not None:
            self.draft.reason = reason
        if process is not None:
            self.draft.process = process
        if notes is not None:
            self.draft.notes = notes

    def close(self) -> None:
        if self.in_flight_id is not None:
            return
        self.dialog_open = False
        self.selected = None
        self.error = None
        self._notify()

    # ── SUBMISSÃO ─────────────────────────────────────────────────────────────
    def confirm(self) -> bool:
        if not self.dialog_open or self.selected is None:
            return False
        if self.in_flight_id is not None:
            logger.debug("Reprocessamento de %s já em andamento", self.in_flight_id)
            return False

        nota = self.selected
        try:
            request = ReprocessRequest.build(nota, self.draft.reason, self.draft.process, self.draft.notes)
        except ValueError as exc:
            self.error = str(exc)
            self._notify()
            return False

        # Marca antes de iniciar a thread: nenhum segundo clique passa daqui
        self.in_flight_id = request.nota_id
        self.error = None
        self._notify()

        results = self._results
        api = self.api

        def worker():
            try:
                response = api.reprocess_nota(request)
                results.put((request.nota_id, "ok", response))
            except Exception as exc:
                logger.exception("Erro ao reprocessar nota %s", request.nota_id)
                results.put((request.nota_id, "error", str(exc) or exc.__class__.__name__))

        self._spawn(worker)
        return True

    def process_pending(self) -> bool:
        changed = False
        while True:
            try:
                nota_id, status, payload = self._results.get_nowait()
            except Empty:
                break
            changed = True
            if self.in_flight_id == nota_id:
                self.in_flight_id = None

            if status == "error":
                self.error = payload
                continue

            logger.info("Reprocessamento solicitado para a nota %s", nota_id)
            self.message = f"Reprocessamento solicitado para a nota {nota_id}."
            self.error = None
            self.dialog_open = False
            self.selected = None
            if self.on_success is not None:
                self.on_success()

        if changed:
            self._notify()
        return changed
