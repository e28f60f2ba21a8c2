from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import requests

from pharma_bulk.models.candidates import CandidateRecord
from pharma_bulk.api.session import SessionContext

"""REST client for the administrator API.

Wraps a requests.Session: JSON bodies, bearer token from the injected
SessionContext, 100s default timeout. Every failure (network, HTTP status,
undecodable or malformed body) surfaces as ApiError whose message is what
the user should read: the server's ``message`` field when present, else the
exception text, else "Error desconocido".
"""

__all__ = [
    "ApiClient",
    "ApiError",
    "BulkCreateResponse",
    "parse_bulk_response",
]

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Error desconocido"
DEFAULT_TIMEOUT_SECONDS = 100.0


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class BulkCreateResponse:
    total: int
    created: int
    failed: int
    errors: list[dict[str, Any]] = field(default_factory=list)


def _server_message(response: requests.Response | None) -> str | None:
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return None


def parse_bulk_response(body: Any) -> BulkCreateResponse:
    """Read ``{summary, errors}``, also accepting the ``{status, message, data}`` envelope."""
    if isinstance(body, dict) and isinstance(body.get("data"), dict) and "summary" in body["data"]:
        body = body["data"]
    if not isinstance(body, dict) or not isinstance(body.get("summary"), dict):
        raise ApiError("Respuesta inválida del servidor: falta el resumen del lote")
    summary = body["summary"]
    try:
        created = int(summary.get("created", 0))
        failed = int(summary.get("failed", 0))
        total = int(summary.get("total", created + failed))
    except (TypeError, ValueError) as e:
        raise ApiError(f"Respuesta inválida del servidor: {e}") from e
    errors = body.get("errors") or []
    if not isinstance(errors, list):
        raise ApiError("Respuesta inválida del servidor: 'errors' no es una lista")
    return BulkCreateResponse(total=total, created=created, failed=failed, errors=errors)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        session: SessionContext | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or SessionContext()
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, json: Any = None) -> Any:
        url = self._url(path)
        try:
            response = self.http.request(
                method,
                url,
                json=json,
                headers=self.session.authorization_header(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ApiError(str(e) or UNKNOWN_ERROR) from e

        if response.status_code == 401:
            logger.warning("401 from %s; clearing session", path)
            self.session.clear()

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            message = _server_message(response) or str(e) or UNKNOWN_ERROR
            raise ApiError(message, status_code=response.status_code) from e

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Respuesta inválida del servidor: {e}", response.status_code) from e

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def bulk_create(
        self, path: str, payload_key: str, records: Sequence[CandidateRecord]
    ) -> BulkCreateResponse:
        body = {payload_key: [r.to_payload() for r in records]}
        return parse_bulk_response(self.post(path, json=body))

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
