from __future__ import annotations

import logging
import sys
from pathlib import Path

# ── Configurar logging (para diagnóstico) ─────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%H:%M:%S',
)
logger = logging.getLogger(__name__)

# ── Garantir que a raiz do repositório esteja no sys.path ────────────────────
# Funciona tanto com:
#   python painel_notas/main.py      (a partir da raiz)
#   python -m painel_notas.main      (a partir da raiz)
_HERE = Path(__file__).resolve().parent   # = .../painel_notas/
_ROOT = _HERE.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from painel_notas import config                       # noqa: E402
from painel_notas.gui.main_window import NotasWindow  # noqa: E402


def main() -> None:
    logger.info("Iniciando Painel de Notas (API: %s)...", config.api_base_url())
    app = NotasWindow()
    app.mainloop()


if __name__ == "__main__":
    main()
