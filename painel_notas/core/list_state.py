"""Estado da lista de notas: filtro, ordenação, busca, paginação e busca na API.

As requisições rodam numa thread de trabalho e devolvem o resultado por uma
fila. `process_pending()` deve ser chamado no thread da UI (a janela faz isso
num laço `after`). Cada requisição leva um número de geração; respostas de
gerações antigas são descartadas, mesmo que cheguem fora de ordem.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from queue import Empty, Queue
from typing import Any

from painel_notas.core.models import (
    TOTAL_FILTER,
    ListQuery,
    NotaFiscal,
    NotaStatus,
    PaginatedResponse,
    SortConfig,
)
from painel_notas.core.notas_utils import (
    backend_sort_field,
    count_by_status,
    is_empty_data,
    normalize_counters,
    resolve_sort_option,
    visible_notas,
)

logger = logging.getLogger(__name__)

Spawn = Callable[[Callable[[], None]], Any]


def spawn_thread(work: Callable[[], None]) -> None:
    threading.Thread(target=work, daemon=True).start()


class NotasListController:
    def __init__(self, api, page_size: int = 10, spawn: Spawn | None = None) -> None:
        self.api = api
        self.page_size = max(1, int(page_size))
        self._spawn = spawn or spawn_thread

        self.notas: list[NotaFiscal] = []
        self.counters: dict[str, int] = {}
        self.loading: bool = False
        self.error: str | None = None
        self.page: int = 1
        self.total_pages: int = 0
        self.total: int = 0
        self.active_filter: str = TOTAL_FILTER
        self.search_term: str = ""
        self.sorting = SortConfig()

        self._generation: int = 0
        self._results: Queue = Queue()
        self._listeners: list[Callable[[], None]] = []

    # ── OBSERVADORES ──────────────────────────────────────────────────────────
    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    # ── AÇÕES ─────────────────────────────────────────────────────────────────
    def set_filter(self, key: str | None) -> None:
        text = str(key or TOTAL_FILTER).strip().upper()
        if text == TOTAL_FILTER:
            new_filter = TOTAL_FILTER
        else:
            status = NotaStatus.parse(text)
            if status is None:
                logger.warning("Filtro desconhecido %r, usando todas as notas", key)
                new_filter = TOTAL_FILTER
            else:
                new_filter = status.value
        self.active_filter = new_filter
        self.page = 1
        self._fetch()

    def toggle_sort(self, field_name: str) -> None:
        if backend_sort_field(field_name) is None:
            return
        if self.sorting.field == field_name:
            self.sorting.direction = "desc" if self.sorting.direction == "asc" else "asc"
        else:
            self.sorting.field = field_name
            self.sorting.direction = "asc"
        self.page = 1
        self._fetch()

    def set_sort_option(self, option: str) -> None:
        field_name = resolve_sort_option(option)
        if field_name is None:
            return
        self.toggle_sort(field_name)

    def set_search(self, term: str) -> None:
        self.search_term = term or ""
        self.page = 1
        self._fetch()

    def set_page(self, page: int) -> None:
        try:
            target = int(page)
        except (TypeError, ValueError):
            logger.warning("Página inválida: %r", page)
            return
        target = max(1, target)
        if self.total_pages > 0:
            target = min(target, self.total_pages)
        if target == self.page:
            return
        self.page = target
        self._fetch()

    def next_page(self) -> None:
        self.set_page(self.page + 1)

    def previous_page(self) -> None:
        self.set_page(self.page - 1)

    def reload(self) -> None:
        self._fetch()

    # ── BUSCA ─────────────────────────────────────────────────────────────────
    def build_query(self) -> ListQuery:
        return ListQuery(
            page=self.page,
            limit=self.page_size,
            status=None if self.active_filter == TOTAL_FILTER else self.active_filter,
            search=self.search_term,
            sort_field=backend_sort_field(self.sorting.field),
            sort_direction=self.sorting.direction,
        )

    def _fetch(self) -> int:
        self._generation += 1
        generation = self._generation
        query = self.build_query()
        self.loading = True
        self._notify()

        results = self._results
        api = self.api

        def worker():
            try:
                start = time.perf_counter()
                response = api.list_notas(query)
                logger.info(
                    "Lista de notas (página %s) carregada em %.2fs",
                    query.page, time.perf_counter() - start,
                )
                results.put((generation, "ok", (query, response)))
            except Exception as exc:
                logger.exception("Erro ao carregar notas")
                results.put((generation, "error", str(exc) or exc.__class__.__name__))

        self._spawn(worker)
        return generation

    def process_pending(self) -> bool:
        """Aplica as respostas recebidas. Retorna True se o estado mudou."""
        changed = False
        while True:
            try:
                generation, status, payload = self._results.get_nowait()
            except Empty:
                break
            if generation != self._generation:
                logger.debug("Resposta obsoleta descartada (geração %s)", generation)
                continue
            self.loading = False
            changed = True
            if status == "error":
                self.error = payload
            else:
                query, response = payload
                self._apply_response(query, response)

        if changed:
            self._notify()
        return changed

    def _apply_response(self, query: ListQuery, response: PaginatedResponse) -> None:
        self.error = None
        total_pages = max(0, response.total_pages)
        if total_pages > 0 and query.page > total_pages:
            # A lista encolheu desde a última busca: volta para a última página
            # sem trocar as notas exibidas até a nova resposta chegar
            self.total_pages = total_pages
            self.total = response.total
            self.page = total_pages
            self._fetch()
            return

        items = [] if is_empty_data(response.items) else response.items
        notas = visible_notas(NotaFiscal.from_api(item) for item in items)
        if len(notas) != len(items):
            logger.debug("%s registro(s) inválido(s) ignorado(s)", len(items) - len(notas))

        self.notas = notas
        if response.counters is not None:
            self.counters = normalize_counters(response.counters)
        else:
            self.counters = count_by_status(notas)
        self.total = response.total
        self.total_pages = total_pages
        self.page = query.page
