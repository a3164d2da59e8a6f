"""Utilidades de exibição das notas fiscais.

Funções puras: status -> rótulo/cores, formatação de moeda, validação de
registros, visibilidade de ações e mapeamento de campos de ordenação.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

from painel_notas.core.models import TOTAL_FILTER, NotaFiscal, NotaStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusDisplay:
    label: str
    bg: str
    fg: str


STATUS_DISPLAY: dict[NotaStatus, StatusDisplay] = {
    NotaStatus.PENDING:     StatusDisplay("Pendente",         "#3a3415", "#fbbf24"),
    NotaStatus.PROCESSING:  StatusDisplay("Em processamento", "#15283a", "#60a5fa"),
    NotaStatus.IDENTIFIED:  StatusDisplay("Identificada",     "#24183a", "#a78bfa"),
    NotaStatus.SAVED:       StatusDisplay("Salva",            "#102f33", "#2dd4bf"),
    NotaStatus.ESCRITURADA: StatusDisplay("Escriturada",      "#12302a", "#5eead4"),
    NotaStatus.COMPLETED:   StatusDisplay("Completa",         "#0d2a1e", "#34d399"),
    NotaStatus.ERROR:       StatusDisplay("Erro",             "#2a0d0d", "#f87171"),
}

_FALLBACK_BG = "#1f2330"
_FALLBACK_FG = "#9ca3af"

COUNTER_LABELS: dict[str, str] = {
    TOTAL_FILTER: "Todas as notas",
    NotaStatus.PENDING.value: "Notas pendentes",
    NotaStatus.PROCESSING.value: "Notas em processamento",
    NotaStatus.IDENTIFIED.value: "Notas identificadas",
    NotaStatus.SAVED.value: "Notas salvas",
    NotaStatus.ESCRITURADA.value: "Notas escrituradas",
    NotaStatus.COMPLETED.value: "Notas completas",
    NotaStatus.ERROR.value: "Notas com erro",
}

COUNTER_KEYS: tuple[str, ...] = tuple(COUNTER_LABELS)

# Campo da nota -> nome aceito pelo backend no parâmetro "sort"
SORTABLE_FIELDS: dict[str, str] = {
    "emission_date": "emission_date",
    "counterparty_cnpj": "counterparty_cnpj",
    "numero": "numero",
    "valor_nota": "valor_nota",
    "status": "status",
    "created_at": "created_at",
}

# Valor do seletor "Ordenar por" -> (rótulo, campo da nota)
SORT_OPTIONS: dict[str, tuple[str, str]] = {
    "data_da_nota":   ("Data da nota",   "emission_date"),
    "fornecedor":     ("Fornecedor",     "counterparty_cnpj"),
    "numero_de_nota": ("Número de nota", "numero"),
    "valor":          ("Valor",          "valor_nota"),
    "status":         ("Status",         "status"),
    "mais_recente":   ("Mais recente",   "created_at"),
}
DEFAULT_SORT_OPTION = "mais_recente"

_NOT_IDENTIFIED = frozenset({NotaStatus.PENDING, NotaStatus.PROCESSING})
_PLACEHOLDERS = {"", "-"}


def get_status_config(status: Any) -> StatusDisplay:
    """Nunca lança: status desconhecido vira um badge neutro com o texto cru."""
    parsed = NotaStatus.parse(status)
    if parsed is not None:
        return STATUS_DISPLAY[parsed]
    raw = str(status or "").strip()
    return StatusDisplay(raw or "-", _FALLBACK_BG, _FALLBACK_FG)


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")


def format_currency(value: Any) -> str:
    """Formata em reais: 1234.5 -> 'R$ 1.234,50'. Vazio ou inválido -> 'R$ 0,00'."""
    amount = _to_decimal(value)
    if not amount.is_finite():
        amount = Decimal("0")
    # Valores muito grandes estouram a precisão padrão (28 dígitos) no quantize
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 4)
        try:
            amount = amount.quantize(Decimal("0.01"))
        except InvalidOperation:
            logger.debug("Valor fora do intervalo formatável: %r", value)
            amount = Decimal("0.00")
    integer_part, decimal_part = f"{amount.copy_abs():,.2f}".split(".")
    text = f"R$ {integer_part.replace(',', '.')},{decimal_part}"
    return f"-{text}" if amount < 0 else text


def is_valid_nota(nota: Any) -> bool:
    if not isinstance(nota, NotaFiscal):
        return False
    if not (nota.qive_id or "").strip():
        return False
    return nota.numero is not None and str(nota.numero).strip() != ""


def visible_notas(notas: Iterable[Any]) -> list[NotaFiscal]:
    return [n for n in notas if is_valid_nota(n)]


def is_empty_data(items: Sequence[Any] | None) -> bool:
    """Lista vazia ou [{}] (o backend às vezes devolve um objeto vazio no lugar de [])."""
    if not items:
        return True
    if len(items) == 1:
        only = items[0]
        return isinstance(only, Mapping) and len(only) == 0
    return False


def can_reprocess(nota: NotaFiscal) -> bool:
    return nota.status_enum is not NotaStatus.COMPLETED


def can_access_pdf(nota: NotaFiscal) -> bool:
    return nota.status_enum not in _NOT_IDENTIFIED


def display_obs(nota: NotaFiscal) -> str:
    obs = (nota.obs or "").strip()
    return "-" if obs in _PLACEHOLDERS else obs


def resolve_sort_option(option: str) -> str | None:
    entry = SORT_OPTIONS.get(option)
    if entry is None:
        logger.error("Opção de ordenação sem mapeamento: %r", option)
        return None
    return entry[1]


def backend_sort_field(field_name: str | None) -> str | None:
    if field_name is None:
        return None
    backend = SORTABLE_FIELDS.get(field_name)
    if backend is None:
        logger.error("Campo de ordenação sem mapeamento para o backend: %r", field_name)
    return backend


def count_by_status(notas: Iterable[NotaFiscal]) -> dict[str, int]:
    counters = {key: 0 for key in COUNTER_KEYS}
    for nota in notas:
        if not is_valid_nota(nota):
            continue
        counters[TOTAL_FILTER] += 1
        status = nota.status_enum
        if status is not None:
            counters[status.value] += 1
    return counters


def normalize_counters(raw: Mapping[str, Any] | None) -> dict[str, int]:
    counters = {key: 0 for key in COUNTER_KEYS}
    for key, qty in (raw or {}).items():
        text = str(key).strip().upper()
        if text == TOTAL_FILTER:
            bucket = TOTAL_FILTER
        else:
            status = NotaStatus.parse(text)
            if status is None:
                logger.debug("Contador ignorado: %r", key)
                continue
            bucket = status.value
        try:
            counters[bucket] += int(qty or 0)
        except (TypeError, ValueError):
            logger.debug("Contador com valor inválido: %r=%r", key, qty)
    return counters
