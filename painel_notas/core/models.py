from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

TOTAL_FILTER = "TOTAL"


class NotaStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    IDENTIFIED = "IDENTIFIED"
    SAVED = "SAVED"
    ESCRITURADA = "ESCRITURADA"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: Any) -> NotaStatus | None:
        """Converte o valor vindo da API; aceita nomes antigos. Desconhecido -> None."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        if not text:
            return None
        if text in cls.__members__:
            return cls[text]
        return _STATUS_ALIASES.get(text)


# Backends antigos enviam outros nomes para os mesmos estados
_STATUS_ALIASES: dict[str, NotaStatus] = {
    "PENDENTE": NotaStatus.PENDING,
    "EM_PROCESSAMENTO": NotaStatus.PROCESSING,
    "IDENTIFICADA": NotaStatus.IDENTIFIED,
    "SALVA": NotaStatus.SAVED,
    "COMPLETA": NotaStatus.COMPLETED,
    "FINALIZADA": NotaStatus.COMPLETED,
    "ERRO": NotaStatus.ERROR,
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


@dataclass(slots=True)
class NotaFiscal:
    qive_id: str
    numero: int | str | None = None
    status: str = ""

    # Datas do ciclo de vida (strings como vêm da API)
    created_at: str | None = None
    emission_date: str | None = None
    identified_date: str | None = None
    processing_started_date: str | None = None
    saved_date: str | None = None
    escriturada_date: str | None = None
    completed_date: str | None = None
    error_date: str | None = None

    counterparty_cnpj: str = ""
    fil_cnpj: str = ""
    filcod: int | None = None
    valor_nota: float | None = None
    obs: str = ""
    attempts: int = 0
    info: str = ""
    id_metrica: str | None = None

    @property
    def status_enum(self) -> NotaStatus | None:
        return NotaStatus.parse(self.status)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> NotaFiscal:
        """Monta a nota a partir do JSON da API sem lançar por campos ausentes."""
        numero = _pick(data, "numero")
        if isinstance(numero, str):
            numero = numero.strip()
            if numero.isdigit():
                numero = int(numero)

        valor = _pick(data, "valor_nota", "total_value", "valor")
        try:
            valor = float(valor) if valor not in (None, "") else None
        except (TypeError, ValueError):
            valor = None

        try:
            attempts = int(_pick(data, "attempts", "attempt_count") or 0)
        except (TypeError, ValueError):
            attempts = 0

        filcod = _pick(data, "filcod")
        try:
            filcod = int(filcod) if filcod not in (None, "") else None
        except (TypeError, ValueError):
            filcod = None

        return cls(
            qive_id=_text(_pick(data, "qive_id", "id")),
            numero=numero if numero != "" else None,
            status=_text(_pick(data, "status")),
            created_at=_optional_text(_pick(data, "created_at")),
            emission_date=_optional_text(_pick(data, "emission_date")),
            identified_date=_optional_text(_pick(data, "identified_date")),
            processing_started_date=_optional_text(_pick(data, "processing_started_date")),
            saved_date=_optional_text(_pick(data, "saved_date")),
            escriturada_date=_optional_text(_pick(data, "escriturada_date")),
            completed_date=_optional_text(_pick(data, "completed_date")),
            error_date=_optional_text(_pick(data, "error_date")),
            counterparty_cnpj=_text(_pick(data, "counterparty_cnpj")),
            fil_cnpj=_text(_pick(data, "filCnpj", "fil_cnpj")),
            filcod=filcod,
            valor_nota=valor,
            obs=_text(_pick(data, "obs")),
            attempts=attempts,
            info=_text(_pick(data, "info")),
            id_metrica=_optional_text(_pick(data, "id_metrica")),
        )


@dataclass(slots=True)
class SortConfig:
    field: str | None = None
    direction: str = "asc"
    # "asc" | "desc"


@dataclass(slots=True)
class ListQuery:
    page: int = 1
    limit: int = 10
    status: str | None = None
    search: str = ""
    sort_field: str | None = None
    sort_direction: str = "asc"

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"page": self.page, "limit": self.limit}
        if self.status and self.status != TOTAL_FILTER:
            params["status"] = self.status
        search = (self.search or "").strip()
        if search:
            params["fornecedor"] = search
        if self.sort_field:
            params["sort"] = self.sort_field
            params["order"] = self.sort_direction
        return params


@dataclass(slots=True)
class PaginatedResponse:
    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
    total_pages: int = 0
    counters: dict[str, Any] | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> PaginatedResponse:
        raw_items = payload.get("data")
        if raw_items is None:
            raw_items = payload.get("items")
        items = [dict(item) for item in raw_items or [] if isinstance(item, Mapping)]

        def _int(key: str, *aliases: str, default: int = 0) -> int:
            value = _pick(payload, key, *aliases)
            try:
                return int(value)
            except (TypeError, ValueError):
                return default

        counters = payload.get("counters")
        return cls(
            items=items,
            total=_int("total", default=len(items)),
            page=_int("page", default=1),
            limit=_int("limit", default=len(items)),
            total_pages=_int("totalPages", "total_pages", default=0),
            counters=dict(counters) if isinstance(counters, Mapping) else None,
        )


@dataclass(slots=True)
class ReprocessRequest:
    nota_id: str
    reason: str
    process: str = ""
    notes: str = ""

    @classmethod
    def build(cls, nota: NotaFiscal, reason: str, process: str = "", notes: str = "") -> ReprocessRequest:
        reason = (reason or "").strip()
        if not nota.qive_id:
            raise ValueError("Nota sem identificador.")
        if not reason:
            raise ValueError("Informe o motivo do reprocessamento.")
        return cls(
            nota_id=nota.qive_id,
            reason=reason,
            process=(process or "").strip(),
            notes=(notes or "").strip(),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"reason": self.reason}
        if self.process:
            payload["process"] = self.process
        if self.notes:
            payload["notes"] = self.notes
        return payload
