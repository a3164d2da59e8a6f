"""Cliente HTTP do backend de notas fiscais."""
from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import quote

import requests

from painel_notas import config
from painel_notas.core.credentials import get_api_token
from painel_notas.core.models import ListQuery, NotaFiscal, PaginatedResponse, ReprocessRequest

logger = logging.getLogger(__name__)

RETRY_STATUS = (429, 500, 502, 503, 504)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotasApiClient:
    """Acesso às rotas /notas do backend (lista, reprocessamento e PDF)."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        retries: int = 2,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls) -> NotasApiClient:
        return cls(
            config.api_base_url(),
            token=get_api_token(),
            timeout=config.api_timeout(),
            retries=config.api_retries(),
        )

    def close(self) -> None:
        self.session.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, retry: bool = True, **kwargs: Any) -> Any:
        url = self._url(path)
        attempts = self.retries + 1 if retry else 1
        last_error = "sem resposta"
        for attempt in range(attempts):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as exc:
                last_error = f"Erro de rede: {exc}"
                logger.warning("Erro de rede em %s %s (tentativa %s)", method, url, attempt + 1)
                if attempt + 1 < attempts:
                    time.sleep(0.6 * (attempt + 1))
                continue

            if response.status_code in RETRY_STATUS and attempt + 1 < attempts:
                logger.warning("HTTP %s em %s %s, repetindo", response.status_code, method, url)
                time.sleep(0.8 * (attempt + 1))
                continue

            if response.status_code >= 400:
                raise ApiError(_error_message(response), status_code=response.status_code)

            if response.status_code == 204 or not response.content:
                return {}
            try:
                return response.json()
            except ValueError as exc:
                raise ApiError(f"Resposta JSON inválida de {url}", status_code=response.status_code) from exc

        raise ApiError(last_error)

    def list_notas(self, query: ListQuery) -> PaginatedResponse:
        payload = self._request("GET", "notas", params=query.to_params())
        if isinstance(payload, list):
            # Algumas versões do backend devolvem só a lista, sem envelope
            payload = {"data": payload, "page": query.page, "limit": query.limit}
        if not isinstance(payload, dict):
            raise ApiError("Formato de resposta inesperado para /notas")
        return PaginatedResponse.from_api(payload)

    def reprocess_nota(self, request: ReprocessRequest) -> dict[str, Any]:
        # Sem repetição: o backend pode ter aceitado a primeira submissão
        payload = self._request(
            "POST",
            f"notas/{quote(request.nota_id, safe='')}/reprocessar",
            json=request.to_payload(),
            retry=False,
        )
        return payload if isinstance(payload, dict) else {"result": payload}

    def pdf_url(self, nota: NotaFiscal) -> str:
        return self._url(f"notas/{quote(nota.qive_id, safe='')}/pdf")


def _error_message(response: requests.Response) -> str:
    detail = ""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = str(body.get("detail") or body.get("message") or body.get("error") or "").strip()
    if not detail:
        detail = (response.text or "").strip()[:200]
    prefix = f"HTTP {response.status_code}"
    return f"{prefix}: {detail}" if detail else prefix
