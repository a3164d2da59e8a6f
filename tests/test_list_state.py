from __future__ import annotations

from conftest import DeferredSpawn, FakeNotasApi, make_record, run_now

from painel_notas.core.api import ApiError
from painel_notas.core.list_state import NotasListController


def _records(n: int, status: str = "PENDING") -> list[dict]:
    return [make_record(f"q{i}", i, status) for i in range(1, n + 1)]


def _loaded(api: FakeNotasApi, page_size: int = 10) -> NotasListController:
    controller = NotasListController(api, page_size=page_size, spawn=run_now)
    controller.reload()
    controller.process_pending()
    return controller


def test_initial_load_exposes_page_and_counters():
    api = FakeNotasApi(_records(25))
    controller = _loaded(api)

    assert not controller.loading
    assert controller.error is None
    assert controller.page == 1
    assert controller.total_pages == 3
    assert controller.total == 25
    assert len(controller.notas) == 10
    assert controller.counters["TOTAL"] == 25
    assert controller.counters["PENDING"] == 25


def test_end_to_end_counters_and_error_filter():
    api = FakeNotasApi([
        make_record("a", 1, "PENDING"),
        make_record("b", 2, "COMPLETED"),
        make_record("c", 3, "ERROR"),
    ])
    controller = _loaded(api)

    assert controller.counters["PENDING"] == 1
    assert controller.counters["COMPLETED"] == 1
    assert controller.counters["ERROR"] == 1
    assert controller.counters["TOTAL"] == 3

    controller.set_filter("ERROR")
    controller.process_pending()
    assert controller.active_filter == "ERROR"
    assert [n.qive_id for n in controller.notas] == ["c"]
    assert api.queries[-1].status == "ERROR"


def test_filter_change_resets_page_before_fetch():
    api = FakeNotasApi(_records(25))
    controller = _loaded(api)
    controller.set_page(3)
    controller.process_pending()
    assert controller.page == 3

    controller.set_filter("PENDING")
    assert api.queries[-1].page == 1
    controller.process_pending()
    assert controller.page == 1


def test_total_filter_sends_no_status_and_unknown_filter_falls_back():
    api = FakeNotasApi(_records(3))
    controller = _loaded(api)
    controller.set_filter("ERROR")
    controller.set_filter("TOTAL")
    assert api.queries[-1].status is None
    assert api.queries[-1].to_params().get("status") is None

    controller.set_filter("nao_existe")
    assert controller.active_filter == "TOTAL"
    controller.set_filter("finalizada")
    assert controller.active_filter == "COMPLETED"


def test_sort_header_toggles_same_field_and_resets_new_field():
    api = FakeNotasApi(_records(5))
    controller = _loaded(api)

    controller.toggle_sort("numero")
    assert (controller.sorting.field, controller.sorting.direction) == ("numero", "asc")
    controller.toggle_sort("numero")
    assert controller.sorting.direction == "desc"
    controller.toggle_sort("numero")
    assert controller.sorting.direction == "asc"
    controller.toggle_sort("numero")
    controller.toggle_sort("valor_nota")
    assert (controller.sorting.field, controller.sorting.direction) == ("valor_nota", "asc")

    last = api.queries[-1]
    assert (last.sort_field, last.sort_direction) == ("valor_nota", "asc")


def test_sort_is_applied_by_backend_in_direction():
    api = FakeNotasApi(_records(5))
    controller = _loaded(api)
    controller.toggle_sort("numero")
    controller.toggle_sort("numero")
    controller.process_pending()
    assert [n.numero for n in controller.notas] == [5, 4, 3, 2, 1]


def test_unmapped_sort_field_issues_no_request():
    api = FakeNotasApi(_records(5))
    controller = _loaded(api)
    before = len(api.queries)

    controller.toggle_sort("attempts")
    controller.set_sort_option("opcao_inexistente")

    assert len(api.queries) == before
    assert controller.sorting.field is None


def test_sort_option_selector_uses_mapping():
    api = FakeNotasApi(_records(5))
    controller = _loaded(api)
    controller.set_sort_option("mais_recente")
    assert controller.sorting.field == "created_at"
    assert api.queries[-1].sort_field == "created_at"


def test_search_refetches_first_page():
    api = FakeNotasApi(_records(25) + [make_record("x", 99, "ERROR", counterparty_cnpj="55.555.555/0001-55")])
    controller = _loaded(api)
    controller.set_page(2)
    controller.process_pending()

    controller.set_search("55.555")
    assert api.queries[-1].page == 1
    assert api.queries[-1].search == "55.555"
    controller.process_pending()
    assert [n.qive_id for n in controller.notas] == ["x"]
    assert controller.counters["TOTAL"] == 1


def test_page_change_is_clamped_to_known_bounds():
    api = FakeNotasApi(_records(25))
    controller = _loaded(api)

    controller.set_page(99)
    controller.process_pending()
    controller.set_page(0)
    controller.process_pending()
    controller.set_page(-4)

    pages = [q.page for q in api.queries]
    assert all(1 <= p <= 3 for p in pages)
    assert controller.page == 1
    assert pages == [1, 3, 1]


def test_same_page_issues_no_request():
    api = FakeNotasApi(_records(25))
    controller = _loaded(api)
    controller.set_page(1)
    controller.previous_page()
    assert len(api.queries) == 1

    controller.next_page()
    controller.process_pending()
    assert controller.page == 2
    assert len(api.queries) == 2


def test_stale_response_arriving_late_is_discarded():
    api = FakeNotasApi([make_record("p", 1, "PENDING"), make_record("e", 2, "ERROR")])
    spawn = DeferredSpawn()
    controller = NotasListController(api, spawn=spawn)

    controller.set_filter("PENDING")   # geração 1 (lenta)
    controller.set_filter("ERROR")     # geração 2 (rápida)
    assert controller.loading

    spawn.run(1)
    controller.process_pending()
    assert [n.qive_id for n in controller.notas] == ["e"]
    assert not controller.loading

    spawn.run(0)
    assert not controller.process_pending()
    assert [n.qive_id for n in controller.notas] == ["e"]


def test_loading_stays_on_until_latest_request_settles():
    api = FakeNotasApi(_records(3))
    spawn = DeferredSpawn()
    controller = NotasListController(api, spawn=spawn)

    controller.reload()
    controller.set_search("abc")
    spawn.run(0)
    controller.process_pending()
    assert controller.loading
    assert controller.notas == []

    spawn.run(0)
    controller.process_pending()
    assert not controller.loading


def test_failure_keeps_last_good_state():
    api = FakeNotasApi(_records(12))
    controller = _loaded(api)
    previous = list(controller.notas)
    previous_counters = dict(controller.counters)

    api.fail_list = ApiError("HTTP 502: Bad Gateway", status_code=502)
    controller.next_page()
    controller.process_pending()

    assert controller.error == "HTTP 502: Bad Gateway"
    assert not controller.loading
    assert controller.notas == previous
    assert controller.counters == previous_counters

    api.fail_list = None
    controller.reload()
    controller.process_pending()
    assert controller.error is None


def test_placeholder_and_invalid_records_are_not_rendered():
    api = FakeNotasApi()
    api.records = [{}]
    controller = NotasListController(api, spawn=run_now)

    def one_empty_object(query):
        from painel_notas.core.models import PaginatedResponse
        api.queries.append(query)
        return PaginatedResponse(items=[{}], total=0, page=1, limit=10, total_pages=0)

    api.list_notas = one_empty_object
    controller.reload()
    controller.process_pending()
    assert controller.notas == []
    assert controller.counters["TOTAL"] == 0

    api2 = FakeNotasApi([make_record("ok", 1, "SAVED"), {"status": "ERROR", "numero": 2}, make_record("", 3, "ERROR")])
    controller2 = _loaded(api2)
    assert [n.qive_id for n in controller2.notas] == ["ok"]


def test_counters_fall_back_to_page_items_when_backend_omits_them():
    api = FakeNotasApi(_records(2, "ERROR"))
    original = api.list_notas

    def without_counters(query):
        response = original(query)
        response.counters = None
        return response

    api.list_notas = without_counters
    controller = _loaded(api)
    assert controller.counters["ERROR"] == 2
    assert controller.counters["TOTAL"] == 2


def test_page_past_end_after_shrink_refetches_last_page():
    api = FakeNotasApi(_records(25))
    controller = _loaded(api)
    controller.set_page(3)
    controller.process_pending()

    del api.records[10:]
    controller.reload()
    controller.process_pending()

    assert controller.total_pages == 1
    assert controller.page == 1
    assert api.queries[-1].page == 1
    assert len(controller.notas) == 10


def test_failed_refetch_after_shrink_keeps_last_good_page():
    api = FakeNotasApi(_records(25))
    spawn = DeferredSpawn()
    controller = NotasListController(api, spawn=spawn)
    controller.set_page(3)
    spawn.run_all()
    controller.process_pending()
    before = [n.qive_id for n in controller.notas]
    assert before == ["q21", "q22", "q23", "q24", "q25"]

    del api.records[10:]
    controller.reload()
    spawn.run(0)
    controller.process_pending()
    assert controller.loading
    assert [n.qive_id for n in controller.notas] == before

    api.fail_list = ApiError("backend fora do ar")
    spawn.run(0)
    controller.process_pending()

    assert controller.error == "backend fora do ar"
    assert not controller.loading
    assert [n.qive_id for n in controller.notas] == before
    assert controller.page == 1
    assert api.queries[-1].page == 1


def test_subscribers_are_notified():
    api = FakeNotasApi(_records(2))
    controller = NotasListController(api, spawn=run_now)
    calls = []
    controller.subscribe(lambda: calls.append(controller.loading))
    controller.reload()
    controller.process_pending()
    assert calls == [True, False]
