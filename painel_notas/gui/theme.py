from __future__ import annotations

import customtkinter as ctk
from tkinter import ttk

# ── PALETA ────────────────────────────────────────────────────────────────────
BG       = "#0d0f14"
SURFACE  = "#13161e"
CARD     = "#181c26"
BORDER   = "#252a38"
ACCENT   = "#f97316"
ACCENT_DIM = "#c2570c"
TEXT     = "#e8eaf0"
MUTED    = "#6b7280"
DANGER   = "#f87171"
WARNING  = "#fbbf24"

# ── FONTES (lazy: só depois que a janela raiz existe) ─────────────────────────
_fonts: dict = {}

def _f(key: str, size: int, weight: str = "normal") -> ctk.CTkFont:
    if key not in _fonts:
        _fonts[key] = ctk.CTkFont(family="Segoe UI", size=size, weight=weight)
    return _fonts[key]

def F_HEADING() -> ctk.CTkFont: return _f("heading", 20, "bold")
def F_TITLE()   -> ctk.CTkFont: return _f("title",   14, "bold")
def F_LABEL()   -> ctk.CTkFont: return _f("label",   12)
def F_SMALL()   -> ctk.CTkFont: return _f("small",   11)
def F_BTN()     -> ctk.CTkFont: return _f("btn",     13, "bold")


_TREE_STYLE_DONE = False

def apply_tree_style():
    global _TREE_STYLE_DONE
    if _TREE_STYLE_DONE:
        return
    style = ttk.Style()
    style.theme_use("default")
    style.configure("Dark.Treeview",
        background=CARD, foreground=TEXT,
        fieldbackground=CARD, borderwidth=0,
        rowheight=28, font=("Segoe UI", 10),
    )
    style.configure("Dark.Treeview.Heading",
        background=SURFACE, foreground=MUTED,
        borderwidth=0, font=("Segoe UI", 9, "bold"),
    )
    style.map("Dark.Treeview",
        background=[("selected", "#3a2414")],
        foreground=[("selected", ACCENT)],
    )
    style.configure("Dark.Vertical.TScrollbar",
        background=SURFACE, troughcolor=BG,
        borderwidth=0, arrowsize=12,
    )
    _TREE_STYLE_DONE = True
