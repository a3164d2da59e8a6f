from __future__ import annotations

from typing import Any

import pytest

from painel_notas.core.models import ListQuery, PaginatedResponse, ReprocessRequest
from painel_notas.core.settings import CONFIG_DIR_ENV, reset_settings_cache


class FakeScheduler:
    """Relógio manual com a mesma interface de `after` / `after_cancel` do Tk."""

    def __init__(self) -> None:
        self.now = 0
        self._next_id = 0
        self.pending: dict[str, tuple[int, Any]] = {}

    def after(self, ms, func):
        self._next_id += 1
        timer_id = f"after#{self._next_id}"
        self.pending[timer_id] = (self.now + int(ms), func)
        return timer_id

    def after_cancel(self, timer_id):
        self.pending.pop(timer_id, None)

    def advance(self, ms: int) -> None:
        self.now += ms
        due = sorted(
            (when, timer_id) for timer_id, (when, _f) in self.pending.items() if when <= self.now
        )
        for _when, timer_id in due:
            entry = self.pending.pop(timer_id, None)
            if entry is not None:
                entry[1]()


class DeferredSpawn:
    """Guarda o trabalho em vez de abrir threads; o teste decide quando e em que ordem rodar."""

    def __init__(self) -> None:
        self.pending: list = []

    def __call__(self, work) -> None:
        self.pending.append(work)

    def run(self, index: int = 0) -> None:
        self.pending.pop(index)()

    def run_all(self) -> None:
        while self.pending:
            self.run(0)


def run_now(work) -> None:
    work()


def make_record(qive_id: str, numero: int, status: str, **extra: Any) -> dict[str, Any]:
    record = {
        "qive_id": qive_id,
        "numero": numero,
        "status": status,
        "counterparty_cnpj": extra.pop("counterparty_cnpj", f"11.222.333/0001-{numero % 100:02d}"),
        "filCnpj": "99.888.777/0001-00",
        "valor_nota": extra.pop("valor_nota", 100.0 * numero),
        "obs": extra.pop("obs", "-"),
        "attempts": extra.pop("attempts", 1),
        "info": extra.pop("info", ""),
        "emission_date": extra.pop("emission_date", f"2024-01-{(numero % 28) + 1:02d}"),
        "created_at": extra.pop("created_at", f"2024-02-{(numero % 28) + 1:02d}T10:00:00"),
    }
    record.update(extra)
    return record


class FakeNotasApi:
    """Backend em memória: filtra, ordena, pagina e conta como o servidor real."""

    def __init__(self, records: list[dict[str, Any]] | None = None) -> None:
        self.records = list(records or [])
        self.queries: list[ListQuery] = []
        self.reprocess_calls: list[ReprocessRequest] = []
        self.fail_list: Exception | None = None
        self.fail_reprocess: Exception | None = None

    def list_notas(self, query: ListQuery) -> PaginatedResponse:
        self.queries.append(query)
        if self.fail_list is not None:
            raise self.fail_list

        rows = self.records
        if query.search:
            rows = [r for r in rows if query.search in str(r.get("counterparty_cnpj", ""))]

        counters: dict[str, int] = {"TOTAL": len(rows)}
        for r in rows:
            counters[r["status"]] = counters.get(r["status"], 0) + 1

        if query.status:
            rows = [r for r in rows if r["status"] == query.status]
        if query.sort_field:
            rows = sorted(
                rows,
                key=lambda r: (r.get(query.sort_field) is None, r.get(query.sort_field)),
                reverse=query.sort_direction == "desc",
            )

        total = len(rows)
        total_pages = (total + query.limit - 1) // query.limit
        start = (query.page - 1) * query.limit
        return PaginatedResponse(
            items=[dict(r) for r in rows[start:start + query.limit]],
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=total_pages,
            counters=counters,
        )

    def reprocess_nota(self, request: ReprocessRequest) -> dict[str, Any]:
        self.reprocess_calls.append(request)
        if self.fail_reprocess is not None:
            raise self.fail_reprocess
        return {"ok": True}


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def deferred() -> DeferredSpawn:
    return DeferredSpawn()


@pytest.fixture
def fake_api() -> FakeNotasApi:
    return FakeNotasApi()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path / "config"))
    reset_settings_cache()
    yield
    reset_settings_cache()


