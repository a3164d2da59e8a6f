from __future__ import annotations

import logging
import webbrowser

import customtkinter as ctk
from tkinter import filedialog, messagebox, ttk

from painel_notas import config
from painel_notas.core.api import NotasApiClient
from painel_notas.core.debounce import SearchDebouncer
from painel_notas.core.export import default_export_filename, export_notas
from painel_notas.core.list_state import NotasListController
from painel_notas.core.models import TOTAL_FILTER, NotaFiscal
from painel_notas.core.notas_utils import (
    COUNTER_KEYS,
    COUNTER_LABELS,
    DEFAULT_SORT_OPTION,
    SORT_OPTIONS,
    STATUS_DISPLAY,
    can_access_pdf,
    display_obs,
    format_currency,
    get_status_config,
    is_empty_data,
)
from painel_notas.core.reprocess import ReprocessWorkflow
from painel_notas.gui.api_settings_dialog import ApiSettingsDialog
from painel_notas.gui.reprocess_dialog import ReprocessDialog
from painel_notas.gui.theme import (
    ACCENT,
    ACCENT_DIM,
    BG,
    BORDER,
    CARD,
    DANGER,
    F_BTN,
    F_HEADING,
    F_LABEL,
    F_SMALL,
    F_TITLE,
    MUTED,
    SURFACE,
    TEXT,
    WARNING,
    apply_tree_style,
)

logger = logging.getLogger(__name__)

# Número fixo de linhas nos estados de carregamento e vazio
FIXED_ROW_COUNT = 7

# (coluna, título, campo ordenável ou None)
COLUMNS = (
    ("emission_date",     "Data de Emissão", "emission_date"),
    ("counterparty_cnpj", "CNPJ Prestador",  "counterparty_cnpj"),
    ("fil_cnpj",          "CNPJ Filial",     None),
    ("numero",            "Número da Nota",  "numero"),
    ("valor",             "Valor",           "valor_nota"),
    ("status",            "Status",          "status"),
    ("obs",               "Detalhes",        None),
    ("attempts",          "Tentativas",      None),
)

_PLACEHOLDER_TAG = "placeholder"


class NotasWindow(ctk.CTk):
    def __init__(self, api: NotasApiClient | None = None) -> None:
        super().__init__()
        ctk.set_appearance_mode(config.appearance_mode())
        ctk.set_default_color_theme("dark-blue")

        self.title("Painel de Notas Fiscais")
        self.geometry("1360x820")
        self.minsize(1080, 640)
        self.configure(fg_color=BG)
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(3, weight=1)

        self.api = api or NotasApiClient.from_settings()
        self.controller = NotasListController(self.api, page_size=config.page_size())
        self.workflow = ReprocessWorkflow(self.api, on_success=self.controller.reload)
        self.debouncer = SearchDebouncer(self, self.controller.set_search, config.search_debounce_ms())

        self._row_map: dict[str, NotaFiscal] = {}
        self._selected: NotaFiscal | None = None
        self._dialog: ReprocessDialog | None = None
        self._counter_buttons: dict[str, ctk.CTkButton] = {}
        self._poll_ms = config.poll_interval_ms()

        apply_tree_style()
        self._build_header()
        self._build_counters()
        self._build_toolbar()
        self._build_table()
        self._build_footer()

        self.controller.subscribe(self._render)
        self.workflow.subscribe(self._on_workflow_change)

        self.controller.reload()
        self.after(self._poll_ms, self._poll)

    # ── LAÇO DE EVENTOS ───────────────────────────────────────────────────────
    def _poll(self):
        try:
            self.controller.process_pending()
            self.workflow.process_pending()
        finally:
            self.after(self._poll_ms, self._poll)

    # ── CONSTRUÇÃO UI ─────────────────────────────────────────────────────────
    def _build_header(self):
        hdr = ctk.CTkFrame(self, fg_color=SURFACE, corner_radius=0)
        hdr.grid(row=0, column=0, sticky="ew")
        hdr.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(hdr, text="Panorama geral", font=F_HEADING(),
                     text_color=TEXT).grid(row=0, column=0, sticky="w", padx=20, pady=14)

        self._status_var = ctk.StringVar(value="")
        ctk.CTkLabel(hdr, textvariable=self._status_var, font=F_SMALL(),
                     text_color=MUTED).grid(row=0, column=1, sticky="e", padx=12)

        ctk.CTkButton(hdr, text="Exportar", width=100, height=32,
                      fg_color=CARD, hover_color=BORDER, text_color=TEXT,
                      font=F_SMALL(), corner_radius=8,
                      command=self._export).grid(row=0, column=2, padx=(0, 8))
        ctk.CTkButton(hdr, text="⚙  API", width=80, height=32,
                      fg_color=CARD, hover_color=BORDER, text_color=MUTED,
                      border_color=BORDER, border_width=1,
                      font=F_SMALL(), corner_radius=8,
                      command=self._open_api_settings).grid(row=0, column=3, padx=(0, 20))

    def _build_counters(self):
        self._counters_frame = ctk.CTkFrame(self, fg_color="transparent")
        self._counters_frame.grid(row=1, column=0, sticky="ew", padx=20, pady=(14, 6))

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color="transparent")
        bar.grid(row=2, column=0, sticky="ew", padx=20, pady=(6, 8))
        bar.grid_columnconfigure(2, weight=1)

        ctk.CTkLabel(bar, text="Notas fiscais", font=F_TITLE(),
                     text_color=TEXT).grid(row=0, column=0, sticky="w", padx=(0, 16))

        self._search_entry = ctk.CTkEntry(
            bar, width=280, height=34,
            placeholder_text="Pesquisar por fornecedor",
            fg_color=CARD, border_color=BORDER, text_color=TEXT,
            font=F_LABEL(), corner_radius=17,
        )
        self._search_entry.grid(row=0, column=1, sticky="w")
        self._search_entry.bind("<KeyRelease>", self._on_search_key)
        self._search_entry.bind("<Return>", lambda _e: self.debouncer.flush())

        self._busy_label = ctk.CTkLabel(bar, text="", font=F_SMALL(), text_color=ACCENT)
        self._busy_label.grid(row=0, column=2, sticky="w", padx=12)

        ctk.CTkLabel(bar, text="Ordenar por:", font=F_SMALL(),
                     text_color=MUTED).grid(row=0, column=3, padx=(0, 8))
        self._sort_labels = {label: option for option, (label, _field) in SORT_OPTIONS.items()}
        self._sort_menu = ctk.CTkOptionMenu(
            bar, values=list(self._sort_labels), width=180, height=32,
            fg_color=CARD, button_color=BORDER, button_hover_color=SURFACE,
            text_color=TEXT, font=F_SMALL(), command=self._on_sort_option,
        )
        self._sort_menu.set(SORT_OPTIONS[DEFAULT_SORT_OPTION][0])
        self._sort_menu.grid(row=0, column=4)

    def _build_table(self):
        frame = ctk.CTkFrame(self, fg_color=SURFACE, corner_radius=10,
                             border_width=1, border_color=BORDER)
        frame.grid(row=3, column=0, sticky="nsew", padx=20)
        frame.grid_rowconfigure(0, weight=1)
        frame.grid_columnconfigure(0, weight=1)

        cols = tuple(c[0] for c in COLUMNS)
        self.tree = ttk.Treeview(frame, columns=cols, show="headings",
                                 selectmode="browse", style="Dark.Treeview")
        for col, title, field_name in COLUMNS:
            if field_name:
                self.tree.heading(col, text=title,
                                  command=lambda f=field_name: self.controller.toggle_sort(f))
            else:
                self.tree.heading(col, text=title)

        self.tree.column("emission_date",     width=110, stretch=False)
        self.tree.column("counterparty_cnpj", width=150, stretch=False)
        self.tree.column("fil_cnpj",          width=150, stretch=False)
        self.tree.column("numero",            width=110, stretch=False)
        self.tree.column("valor",             width=120, stretch=False, anchor="e")
        self.tree.column("status",            width=140, stretch=False)
        self.tree.column("obs",               width=260)
        self.tree.column("attempts",          width=80,  stretch=False, anchor="center")

        vsb = ttk.Scrollbar(frame, orient="vertical",
                            command=self.tree.yview, style="Dark.Vertical.TScrollbar")
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew", padx=(6, 0), pady=6)
        vsb.grid(row=0, column=1, sticky="ns", pady=6)

        for status, meta in STATUS_DISPLAY.items():
            self.tree.tag_configure(status.value, foreground=meta.fg)
        self.tree.tag_configure(_PLACEHOLDER_TAG, foreground=MUTED)
        self.tree.bind("<<TreeviewSelect>>", self._on_select)
        self.tree.bind("<Double-1>", lambda _e: self._reprocess_selected())

    def _build_footer(self):
        footer = ctk.CTkFrame(self, fg_color="transparent")
        footer.grid(row=4, column=0, sticky="ew", padx=20, pady=(8, 14))
        footer.grid_columnconfigure(1, weight=1)

        actions = ctk.CTkFrame(footer, fg_color="transparent")
        actions.grid(row=0, column=0, sticky="w")
        self._btn_pdf = ctk.CTkButton(actions, text="Acessar PDF", width=120, height=32,
                                      fg_color=CARD, hover_color=BORDER, text_color=ACCENT,
                                      border_color=ACCENT, border_width=1,
                                      font=F_SMALL(), corner_radius=8,
                                      command=self._access_pdf_selected)
        self._btn_pdf.pack(side="left", padx=(0, 8))
        self._btn_reprocess = ctk.CTkButton(actions, text="Reprocessar", width=120, height=32,
                                            fg_color=ACCENT, hover_color=ACCENT_DIM,
                                            text_color="#1a0d05", font=F_BTN(), corner_radius=8,
                                            command=self._reprocess_selected)
        self._btn_reprocess.pack(side="left")

        self._error_var = ctk.StringVar(value="")
        ctk.CTkLabel(footer, textvariable=self._error_var, font=F_SMALL(),
                     text_color=DANGER, wraplength=520).grid(row=0, column=1, sticky="w", padx=16)

        self._pager = ctk.CTkFrame(footer, fg_color="transparent")
        self._pager.grid(row=0, column=2, sticky="e")
        self._btn_prev = ctk.CTkButton(self._pager, text="◀", width=36, height=30,
                                       fg_color=CARD, hover_color=BORDER, text_color=TEXT,
                                       command=self.controller.previous_page)
        self._btn_prev.pack(side="left")
        self._page_var = ctk.StringVar(value="")
        ctk.CTkLabel(self._pager, textvariable=self._page_var, font=F_SMALL(),
                     text_color=MUTED).pack(side="left", padx=10)
        self._btn_next = ctk.CTkButton(self._pager, text="▶", width=36, height=30,
                                       fg_color=CARD, hover_color=BORDER, text_color=TEXT,
                                       command=self.controller.next_page)
        self._btn_next.pack(side="left")

        self._update_actions()

    # ── RENDERIZAÇÃO ──────────────────────────────────────────────────────────
    def _render(self):
        c = self.controller
        self._render_counters()
        self._render_headings()
        self._refresh_tree()
        self._render_pager()
        self._update_busy()
        self._sort_menu.configure(state="disabled" if c.loading else "normal")
        self._error_var.set(f"Erro ao carregar notas: {c.error}" if c.error else "")
        if not c.loading and not c.error:
            self._set_status(f"{c.total} nota(s)")

    def _render_counters(self):
        counters = self.controller.counters
        active = self.controller.active_filter
        for w in self._counters_frame.winfo_children():
            w.destroy()
        self._counter_buttons = {}

        for key in COUNTER_KEYS:
            qty = int(counters.get(key, 0))
            if not qty and key != TOTAL_FILTER:
                continue
            is_active = key == active
            btn = ctk.CTkButton(
                self._counters_frame,
                text=f"{qty}\n{COUNTER_LABELS[key]}",
                width=150, height=58,
                fg_color=ACCENT if is_active else CARD,
                hover_color=ACCENT_DIM if is_active else BORDER,
                text_color="#1a0d05" if is_active else TEXT,
                font=F_LABEL(),
                corner_radius=10,
                command=lambda k=key: self.controller.set_filter(k),
            )
            btn.pack(side="left", padx=(0, 10))
            self._counter_buttons[key] = btn

    def _render_headings(self):
        sorting = self.controller.sorting
        for col, title, field_name in COLUMNS:
            if field_name and sorting.field == field_name:
                arrow = "↑" if sorting.direction == "asc" else "↓"
                self.tree.heading(col, text=f"{title} {arrow}")
            else:
                self.tree.heading(col, text=title)

    def _refresh_tree(self):
        c = self.controller
        self.tree.delete(*self.tree.get_children())
        self._row_map = {}

        if c.loading:
            self._insert_placeholder("Carregando notas...")
            self._update_actions()
            return

        if is_empty_data(c.notas):
            self._insert_placeholder("Nenhuma nota fiscal encontrada.")
            self._selected = None
            self._update_actions()
            return

        for nota in c.notas:
            if nota.qive_id in self._row_map:
                logger.warning("Nota duplicada na página: %s", nota.qive_id)
                continue
            status_meta = get_status_config(nota.status)
            status_enum = nota.status_enum
            row_values = (
                nota.emission_date or "-",
                nota.counterparty_cnpj or "-",
                nota.fil_cnpj or "-",
                nota.numero,
                format_currency(nota.valor_nota),
                status_meta.label,
                display_obs(nota),
                nota.attempts or 1,
            )
            tags = (status_enum.value,) if status_enum else ()
            self.tree.insert("", "end", iid=nota.qive_id, values=row_values, tags=tags)
            self._row_map[nota.qive_id] = nota

        # Mantém a seleção se a nota continua na página
        if self._selected and self._selected.qive_id in self._row_map:
            iid = self._selected.qive_id
            self._selected = self._row_map[iid]
            self.tree.selection_set(iid)
            self.tree.see(iid)
        else:
            self._selected = None
        self._update_actions()

    def _insert_placeholder(self, message: str):
        blank = ("",) * len(COLUMNS)
        self.tree.insert("", "end", values=("", "", "", message, "", "", "", ""),
                         tags=(_PLACEHOLDER_TAG,))
        for _ in range(FIXED_ROW_COUNT - 1):
            self.tree.insert("", "end", values=blank, tags=(_PLACEHOLDER_TAG,))

    def _render_pager(self):
        c = self.controller
        show = not c.loading and not is_empty_data(c.notas) and c.total_pages > 1
        if not show:
            self._pager.grid_remove()
            return
        self._pager.grid()
        self._page_var.set(f"Página {c.page} de {c.total_pages}")
        self._btn_prev.configure(state="normal" if c.page > 1 else "disabled")
        self._btn_next.configure(state="normal" if c.page < c.total_pages else "disabled")

    def _update_busy(self):
        busy = self.debouncer.busy(self.controller.loading)
        self._busy_label.configure(text="Buscando..." if busy else "")

    def _update_actions(self):
        nota = self._selected
        pdf_ok = nota is not None and can_access_pdf(nota)
        reprocess_ok = nota is not None and self.workflow.can_trigger(nota)
        self._btn_pdf.configure(state="normal" if pdf_ok else "disabled")
        self._btn_reprocess.configure(state="normal" if reprocess_ok else "disabled")

    # ── EVENTOS ───────────────────────────────────────────────────────────────
    def _on_search_key(self, event=None):
        if event is not None and event.keysym in ("Return", "KP_Enter"):
            return
        value = self._search_entry.get()
        if value == self.debouncer.input_value:
            return
        self.debouncer.on_input(value)
        self._update_busy()

    def _on_sort_option(self, label: str):
        option = self._sort_labels.get(label, label)
        self.controller.set_sort_option(option)

    def _on_select(self, _event=None):
        sel = self.tree.selection()
        self._selected = self._row_map.get(sel[0]) if sel else None
        self._update_actions()

    def _access_pdf_selected(self):
        nota = self._selected
        if nota is None or not can_access_pdf(nota):
            return
        url = self.api.pdf_url(nota)
        logger.info("Abrindo PDF da nota %s", nota.qive_id)
        if not webbrowser.open(url):
            self._show_warning("PDF", f"Não foi possível abrir o navegador.\n{url}")

    def _reprocess_selected(self):
        nota = self._selected
        if nota is None or not self.workflow.can_trigger(nota):
            return
        self.workflow.open(nota)

    def _on_workflow_change(self):
        wf = self.workflow
        if wf.dialog_open and self._dialog is None:
            self._dialog = ReprocessDialog(self, wf)
        elif not wf.dialog_open and self._dialog is not None:
            if self._dialog.winfo_exists():
                self._dialog.destroy()
            self._dialog = None
        elif self._dialog is not None:
            self._dialog.refresh()

        if wf.message and not wf.dialog_open:
            self._set_status(wf.message)
            wf.message = None
        if wf.error and self._dialog is None:
            self._show_error("Erro ao reprocessar", wf.error)
            wf.error = None
        self._update_actions()

    def _open_api_settings(self):
        ApiSettingsDialog(self, on_saved=self._on_api_settings_saved)

    def _on_api_settings_saved(self):
        self.api.close()
        self.api = NotasApiClient.from_settings()
        self.controller.api = self.api
        self.controller.page_size = config.page_size()
        self.workflow.api = self.api
        self._set_status("Configuração da API atualizada")
        self.controller.set_filter(self.controller.active_filter)

    def _export(self):
        notas = self.controller.notas
        if not notas:
            messagebox.showinfo("Exportar", "Não há notas para exportar.")
            return
        target = filedialog.asksaveasfilename(
            title="Exportar notas",
            defaultextension=".xlsx",
            initialfile=default_export_filename(self.controller.active_filter),
            filetypes=[("Excel", "*.xlsx"), ("CSV", "*.csv")],
            confirmoverwrite=True,
        )
        if not target:
            return
        try:
            path = export_notas(notas, target)
        except PermissionError:
            self._show_error(
                "Erro ao exportar",
                f"O arquivo está aberto em outro programa.\nFeche-o e tente novamente:\n{target}",
            )
            return
        except (ValueError, OSError) as exc:
            self._show_error("Erro ao exportar", str(exc))
            return
        self._set_status(f"Exportado: {path.name}")

    # ── HELPERS ───────────────────────────────────────────────────────────────
    def _set_status(self, text: str):
        self._status_var.set(text)

    def _show_error(self, title: str, msg: str):
        win = ctk.CTkToplevel(self)
        win.title(title)
        win.geometry("420x200")
        win.configure(fg_color=CARD)
        win.grab_set()
        ctk.CTkLabel(win, text=f"✗  {title}", font=F_BTN(),
                     text_color=DANGER).pack(pady=(24, 8))
        ctk.CTkLabel(win, text=msg, font=F_SMALL(), text_color=TEXT,
                     wraplength=380, justify="center").pack(pady=(0, 16))
        ctk.CTkButton(win, text="Fechar", fg_color=SURFACE,
                      hover_color=BORDER, text_color=TEXT,
                      command=win.destroy).pack()

    def _show_warning(self, title: str, msg: str):
        win = ctk.CTkToplevel(self)
        win.title(title)
        win.geometry("440x220")
        win.configure(fg_color=CARD)
        win.grab_set()
        ctk.CTkLabel(win, text=f"⚠  {title}", font=F_BTN(),
                     text_color=WARNING).pack(pady=(24, 8))
        ctk.CTkLabel(win, text=msg, font=F_SMALL(), text_color=TEXT,
                     wraplength=400, justify="center").pack(pady=(0, 16))
        ctk.CTkButton(win, text="Entendido", fg_color=SURFACE,
                      hover_color=BORDER, text_color=TEXT,
                      command=win.destroy).pack()
