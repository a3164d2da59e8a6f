from __future__ import annotations

import unittest

from painel_notas.core.models import (
    ListQuery,
    NotaFiscal,
    NotaStatus,
    PaginatedResponse,
    ReprocessRequest,
)


class NotaStatusParseTests(unittest.TestCase):
    def test_canonical_and_legacy_names(self) -> None:
        self.assertIs(NotaStatus.parse("PENDING"), NotaStatus.PENDING)
        self.assertIs(NotaStatus.parse("pending"), NotaStatus.PENDING)
        self.assertIs(NotaStatus.parse("PENDENTE"), NotaStatus.PENDING)
        self.assertIs(NotaStatus.parse("em_processamento"), NotaStatus.PROCESSING)
        self.assertIs(NotaStatus.parse("identificada"), NotaStatus.IDENTIFIED)
        self.assertIs(NotaStatus.parse("FINALIZADA"), NotaStatus.COMPLETED)
        self.assertIs(NotaStatus.parse(NotaStatus.ERROR), NotaStatus.ERROR)

    def test_unknown_is_none(self) -> None:
        self.assertIsNone(NotaStatus.parse("???"))
        self.assertIsNone(NotaStatus.parse(None))
        self.assertIsNone(NotaStatus.parse(""))


class NotaFiscalFromApiTests(unittest.TestCase):
    def test_maps_api_fields(self) -> None:
        nota = NotaFiscal.from_api(
            {
                "qive_id": "abc",
                "numero": "123",
                "status": "ERROR",
                "filCnpj": "99.888.777/0001-00",
                "counterparty_cnpj": "11.222.333/0001-44",
                "valor_nota": "150.75",
                "attempts": 3,
                "obs": "Falha no XML",
                "info": "PROC-9",
                "filcod": "7",
                "emission_date": "2024-03-01",
            }
        )
        self.assertEqual(nota.qive_id, "abc")
        self.assertEqual(nota.numero, 123)
        self.assertEqual(nota.fil_cnpj, "99.888.777/0001-00")
        self.assertEqual(nota.valor_nota, 150.75)
        self.assertEqual(nota.attempts, 3)
        self.assertEqual(nota.filcod, 7)
        self.assertEqual(nota.info, "PROC-9")
        self.assertIs(nota.status_enum, NotaStatus.ERROR)

    def test_missing_and_broken_fields_do_not_raise(self) -> None:
        nota = NotaFiscal.from_api({"valor_nota": "n/a", "attempts": "x", "numero": ""})
        self.assertEqual(nota.qive_id, "")
        self.assertIsNone(nota.numero)
        self.assertIsNone(nota.valor_nota)
        self.assertEqual(nota.attempts, 0)
        self.assertIsNone(nota.created_at)

    def test_total_value_alias(self) -> None:
        nota = NotaFiscal.from_api({"qive_id": "a", "numero": 1, "total_value": 10})
        self.assertEqual(nota.valor_nota, 10.0)


class ListQueryTests(unittest.TestCase):
    def test_all_filter_and_blank_search_are_omitted(self) -> None:
        params = ListQuery(page=2, limit=20, status="TOTAL", search="  ").to_params()
        self.assertEqual(params, {"page": 2, "limit": 20})

    def test_full_params(self) -> None:
        params = ListQuery(
            page=1, limit=10, status="ERROR", search="11.222",
            sort_field="numero", sort_direction="desc",
        ).to_params()
        self.assertEqual(
            params,
            {"page": 1, "limit": 10, "status": "ERROR", "fornecedor": "11.222", "sort": "numero", "order": "desc"},
        )


class PaginatedResponseTests(unittest.TestCase):
    def test_from_api_envelope(self) -> None:
        response = PaginatedResponse.from_api(
            {
                "data": [{"qive_id": "a"}, "lixo"],
                "total": 31,
                "page": 2,
                "limit": 10,
                "totalPages": 4,
                "counters": {"TOTAL": 31},
            }
        )
        self.assertEqual(response.items, [{"qive_id": "a"}])
        self.assertEqual(response.total_pages, 4)
        self.assertEqual(response.page, 2)
        self.assertEqual(response.counters, {"TOTAL": 31})

    def test_missing_counters_is_none(self) -> None:
        response = PaginatedResponse.from_api({"data": []})
        self.assertIsNone(response.counters)
        self.assertEqual(response.total_pages, 0)


class ReprocessRequestTests(unittest.TestCase):
    def test_build_strips_and_serializes(self) -> None:
        nota = NotaFiscal(qive_id="q1", numero=5)
        request = ReprocessRequest.build(nota, "  Reenviar  ", process="", notes=" ver fornecedor ")
        self.assertEqual(request.to_payload(), {"reason": "Reenviar", "notes": "ver fornecedor"})

    def test_empty_reason_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ReprocessRequest.build(NotaFiscal(qive_id="q1", numero=5), "   ")


if __name__ == "__main__":
    unittest.main()
