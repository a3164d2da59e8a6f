from __future__ import annotations

import customtkinter as ctk

from painel_notas.core.notas_utils import display_obs, format_currency, get_status_config
from painel_notas.core.reprocess import ReprocessWorkflow
from painel_notas.gui.theme import (
    ACCENT,
    ACCENT_DIM,
    BORDER,
    CARD,
    DANGER,
    F_LABEL,
    F_SMALL,
    F_TITLE,
    MUTED,
    SURFACE,
    TEXT,
)


class ReprocessDialog(ctk.CTkToplevel):
    """Confirmação de reprocessamento: dados da nota só leitura + motivo/processo/observações."""

    def __init__(self, parent, workflow: ReprocessWorkflow):
        super().__init__(parent)
        self.title("Reprocessar nota fiscal")
        self.configure(fg_color=CARD)
        self.geometry("520x560")
        self.resizable(False, False)
        self.transient(parent)
        self._workflow = workflow
        nota = workflow.selected

        self.protocol("WM_DELETE_WINDOW", self._cancel)
        self.bind("<Escape>", lambda _e: self._cancel())

        card = ctk.CTkFrame(self, fg_color=CARD, corner_radius=10,
                            border_width=1, border_color=BORDER)
        card.pack(fill="both", expand=True, padx=10, pady=10)
        card.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(card, text="Solicitar reprocessamento",
                     font=F_TITLE(), text_color=TEXT).grid(
            row=0, column=0, columnspan=2, sticky="w", padx=14, pady=(14, 10))

        # Dados da nota (só leitura)
        readonly = [
            ("Número da nota", str(nota.numero) if nota else "-"),
            ("Data de emissão", (nota.emission_date if nota else None) or "-"),
            ("CNPJ prestador", (nota.counterparty_cnpj if nota else "") or "-"),
            ("CNPJ filial", (nota.fil_cnpj if nota else "") or "-"),
            ("Valor", format_currency(nota.valor_nota if nota else None)),
            ("Status", get_status_config(nota.status if nota else None).label),
            ("Tentativas", str((nota.attempts if nota else 0) or 1)),
            ("Detalhes", display_obs(nota) if nota else "-"),
        ]
        row = 1
        for label, value in readonly:
            ctk.CTkLabel(card, text=label, font=F_SMALL(), text_color=MUTED).grid(
                row=row, column=0, sticky="w", padx=(14, 10), pady=2)
            ctk.CTkLabel(card, text=value, font=F_LABEL(), text_color=TEXT,
                         wraplength=320, justify="left").grid(
                row=row, column=1, sticky="w", padx=(0, 14), pady=2)
            row += 1

        # Campos editáveis
        draft = workflow.draft
        self._reason_var = ctk.StringVar(value=draft.reason)
        self._process_var = ctk.StringVar(value=draft.process)

        ctk.CTkLabel(card, text="Motivo", font=F_SMALL(), text_color=MUTED).grid(
            row=row, column=0, columnspan=2, sticky="w", padx=14, pady=(12, 2))
        row += 1
        self._reason_entry = ctk.CTkEntry(card, textvariable=self._reason_var,
                                          fg_color=SURFACE, border_color=BORDER, text_color=TEXT,
                                          font=F_LABEL(), height=32, corner_radius=6)
        self._reason_entry.grid(row=row, column=0, columnspan=2, sticky="ew", padx=14)
        row += 1

        ctk.CTkLabel(card, text="Processo", font=F_SMALL(), text_color=MUTED).grid(
            row=row, column=0, columnspan=2, sticky="w", padx=14, pady=(8, 2))
        row += 1
        ctk.CTkEntry(card, textvariable=self._process_var,
                     fg_color=SURFACE, border_color=BORDER, text_color=TEXT,
                     font=F_LABEL(), height=32, corner_radius=6).grid(
            row=row, column=0, columnspan=2, sticky="ew", padx=14)
        row += 1

        ctk.CTkLabel(card, text="Observações", font=F_SMALL(), text_color=MUTED).grid(
            row=row, column=0, columnspan=2, sticky="w", padx=14, pady=(8, 2))
        row += 1
        self._notes_box = ctk.CTkTextbox(card, height=70, fg_color=SURFACE, border_color=BORDER,
                                         border_width=1, text_color=TEXT, font=F_LABEL())
        self._notes_box.insert("1.0", draft.notes)
        self._notes_box.grid(row=row, column=0, columnspan=2, sticky="ew", padx=14)
        row += 1

        self._error_label = ctk.CTkLabel(card, text="", text_color=DANGER,
                                         font=F_SMALL(), wraplength=460)
        self._error_label.grid(row=row, column=0, columnspan=2, sticky="ew", padx=14, pady=(6, 4))
        row += 1

        btns = ctk.CTkFrame(card, fg_color="transparent")
        btns.grid(row=row, column=0, columnspan=2, sticky="ew", padx=14, pady=(0, 12))
        self._btn_cancel = ctk.CTkButton(btns, text="Cancelar", width=110,
                                         fg_color=SURFACE, hover_color=BORDER,
                                         font=F_SMALL(), text_color=TEXT,
                                         command=self._cancel)
        self._btn_cancel.pack(side="left")
        self._btn_confirm = ctk.CTkButton(btns, text="Reprocessar", width=130,
                                          fg_color=ACCENT, hover_color=ACCENT_DIM,
                                          font=F_SMALL(), text_color="#1a0d05",
                                          command=self._confirm)
        self._btn_confirm.pack(side="right")

        self.refresh()
        self.grab_set()
        self.after(10, self.focus_force)
        self.after(20, self._reason_entry.focus)

    def refresh(self):
        """Sincroniza botões e mensagem de erro com o estado do fluxo."""
        busy = self._workflow.is_in_flight()
        self._btn_confirm.configure(
            state="disabled" if busy else "normal",
            text="Enviando..." if busy else "Reprocessar",
        )
        self._btn_cancel.configure(state="disabled" if busy else "normal")
        self._error_label.configure(text=self._workflow.error or "")

    def _confirm(self):
        self._workflow.update(
            reason=self._reason_var.get(),
            process=self._process_var.get(),
            notes=self._notes_box.get("1.0", "end").strip(),
        )
        self._workflow.confirm()
        self.refresh()

    def _cancel(self):
        if self._workflow.is_in_flight():
            return
        self._workflow.close()
