from __future__ import annotations

import logging
import os

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

SERVICE_ID = "PainelNotas_API"
TOKEN_USER = "api_token"
TOKEN_ENV = "PAINEL_NOTAS_TOKEN"

logger = logging.getLogger(__name__)


def get_api_token() -> str | None:
    """
    Retorna o token da API.
    A variável de ambiente tem precedência sobre o keyring do sistema.
    """
    env_token = (os.getenv(TOKEN_ENV) or "").strip()
    if env_token:
        return env_token
    return get_stored_api_token()


def get_stored_api_token() -> str | None:
    """Só o valor guardado no keyring, ignorando a variável de ambiente."""
    try:
        token = keyring.get_password(SERVICE_ID, TOKEN_USER)
    except KeyringError:
        logger.warning("Keyring indisponível, seguindo sem token", exc_info=True)
        return None
    return (token or "").strip() or None


def save_api_token(token: str) -> None:
    token = (token or "").strip()
    if not token:
        delete_api_token()
        return
    keyring.set_password(SERVICE_ID, TOKEN_USER, token)


def delete_api_token() -> None:
    try:
        keyring.delete_password(SERVICE_ID, TOKEN_USER)
    except PasswordDeleteError:
        pass
