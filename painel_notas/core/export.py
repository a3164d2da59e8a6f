from __future__ import annotations

import csv
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

from painel_notas.core.models import TOTAL_FILTER, NotaFiscal
from painel_notas.core.notas_utils import display_obs, get_status_config

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "qive_id",
    "numero",
    "emission_date",
    "counterparty_cnpj",
    "fil_cnpj",
    "valor_nota",
    "status",
    "attempts",
    "obs",
    "created_at",
]

PRETTY_HEADERS = {
    "qive_id": "ID",
    "numero": "Número da Nota",
    "emission_date": "Data de Emissão",
    "counterparty_cnpj": "CNPJ Prestador",
    "fil_cnpj": "CNPJ Filial",
    "valor_nota": "Valor",
    "status": "Status",
    "attempts": "Tentativas",
    "obs": "Detalhes",
    "created_at": "Criada em",
}


def default_export_filename(active_filter: str = TOTAL_FILTER, now: datetime | None = None) -> str:
    now = now or datetime.now()
    label = (active_filter or TOTAL_FILTER).strip().lower() or "total"
    return f"notas_{label}_{now:%Y%m%d_%H%M}.xlsx"


def _rows(notas: Sequence[NotaFiscal]) -> list[dict]:
    rows: list[dict] = []
    for n in notas:
        rows.append(
            {
                "qive_id": n.qive_id,
                "numero": n.numero,
                "emission_date": n.emission_date or "",
                "counterparty_cnpj": n.counterparty_cnpj,
                "fil_cnpj": n.fil_cnpj,
                "valor_nota": n.valor_nota if n.valor_nota is not None else 0.0,
                "status": get_status_config(n.status).label,
                "attempts": n.attempts or 1,
                "obs": display_obs(n),
                "created_at": n.created_at or "",
            }
        )
    return rows


def export_notas(notas: Sequence[NotaFiscal], target: str | Path) -> Path:
    """Exporta as notas para .csv ou .xlsx conforme a extensão do destino."""
    if not notas:
        raise ValueError("Não há notas para exportar.")

    target = Path(target)
    suffix = target.suffix.lower()
    if suffix not in (".csv", ".xlsx"):
        raise ValueError(f"Formato não suportado: {target.suffix or '(sem extensão)'}")

    rows = _rows(notas)
    target.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".csv":
        with open(target, "w", newline="", encoding="utf-8-sig") as fh:
            writer = csv.DictWriter(fh, fieldnames=EXPORT_COLUMNS)
            writer.writerow(PRETTY_HEADERS)
            writer.writerows(rows)
    else:
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        df["valor_nota"] = pd.to_numeric(df["valor_nota"], errors="coerce").fillna(0.0)
        df = df.rename(columns=PRETTY_HEADERS)

        header_fill = PatternFill("solid", fgColor="1F4E78")
        header_font = Font(bold=True, color="FFFFFF")
        with pd.ExcelWriter(target, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Notas")
            ws = writer.sheets["Notas"]
            for cell in ws[1]:
                cell.fill = header_fill
                cell.font = header_font
                cell.alignment = Alignment(horizontal="center", vertical="center")
            value_col = EXPORT_COLUMNS.index("valor_nota") + 1
            for row in ws.iter_rows(min_row=2, min_col=value_col, max_col=value_col):
                for cell in row:
                    cell.number_format = '"R$" #,##0.00'
            for idx, col in enumerate(df.columns, start=1):
                width = max(len(str(col)), *(len(str(v)) for v in df[col].tolist())) + 2
                ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = min(width, 60)

    logger.info("%s nota(s) exportada(s) para %s", len(rows), target)
    return target
