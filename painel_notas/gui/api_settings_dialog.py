from __future__ import annotations

import logging

import customtkinter as ctk
from keyring.errors import KeyringError

from painel_notas.core.credentials import get_stored_api_token, save_api_token
from painel_notas.core.settings import get_settings, save_settings
from painel_notas.gui.theme import ACCENT, ACCENT_DIM, BORDER, CARD, DANGER, F_LABEL, F_SMALL, F_TITLE, MUTED, SURFACE, TEXT

logger = logging.getLogger(__name__)


class ApiSettingsDialog(ctk.CTkToplevel):
    """Endereço da API, tamanho de página e token (guardado no keyring)."""

    def __init__(self, parent, on_saved):
        super().__init__(parent)
        self.title("Configurar API")
        self.configure(fg_color=CARD)
        self.geometry("440x330")
        self.resizable(False, False)
        self.transient(parent)
        self._on_saved = on_saved

        self.bind("<Escape>", lambda _e: self.destroy())
        self.bind("<Return>", lambda _e: self._save())

        settings = get_settings()
        self._url_var = ctk.StringVar(value=settings["api_base_url"])
        self._page_size_var = ctk.StringVar(value=str(settings["page_size"]))
        self._token_var = ctk.StringVar(value=get_stored_api_token() or "")

        card = ctk.CTkFrame(self, fg_color=CARD, corner_radius=10,
                            border_width=1, border_color=BORDER)
        card.pack(fill="both", expand=True, padx=10, pady=10)

        ctk.CTkLabel(card, text="Conexão com o backend", font=F_TITLE(),
                     text_color=TEXT).pack(fill="x", padx=12, pady=(12, 8))

        for label, var, show in (
            ("URL base da API", self._url_var, ""),
            ("Notas por página", self._page_size_var, ""),
            ("Token de acesso", self._token_var, "•"),
        ):
            ctk.CTkLabel(card, text=label, font=F_SMALL(), text_color=MUTED,
                         anchor="w").pack(fill="x", padx=12, pady=(4, 2))
            ctk.CTkEntry(card, textvariable=var, show=show,
                         fg_color=SURFACE, border_color=BORDER, text_color=TEXT,
                         font=F_LABEL(), height=32, corner_radius=6).pack(fill="x", padx=12)

        self._error_label = ctk.CTkLabel(card, text="", text_color=DANGER,
                                         font=F_SMALL(), wraplength=380)
        self._error_label.pack(fill="x", padx=12, pady=(6, 4))

        btns = ctk.CTkFrame(card, fg_color="transparent")
        btns.pack(fill="x", padx=12, pady=(0, 12))
        ctk.CTkButton(btns, text="Cancelar", width=100, fg_color=SURFACE, hover_color=BORDER,
                      font=F_SMALL(), text_color=TEXT, command=self.destroy).pack(side="left")
        ctk.CTkButton(btns, text="Salvar", width=100, fg_color=ACCENT, hover_color=ACCENT_DIM,
                      font=F_SMALL(), text_color="#1a0d05", command=self._save).pack(side="right")

        self.after(10, self.focus_force)

    def _save(self):
        url = self._url_var.get().strip()
        if not url.startswith(("http://", "https://")):
            self._error_label.configure(text="Informe uma URL http:// ou https://.")
            return
        try:
            page_size = int(self._page_size_var.get().strip())
        except ValueError:
            self._error_label.configure(text="Notas por página deve ser um número.")
            return

        save_settings({"api_base_url": url, "page_size": page_size})
        try:
            save_api_token(self._token_var.get())
        except KeyringError as exc:
            logger.warning("Não foi possível salvar o token no keyring", exc_info=True)
            self._error_label.configure(text=f"Token não salvo: {exc}")
            return

        self.destroy()
        self._on_saved()
