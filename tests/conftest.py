# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from pharma_bulk.api.client import ApiError, BulkCreateResponse
from pharma_bulk.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("PHARMA_API_BASE_URL", raising=False)
        monkeypatch.delenv("PHARMA_API_TOKEN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """api:
  base_url: https://api.example.test/
  token: secret-token
  timeout_seconds: 30
entities:
  municipalities:
    batch_size: 50
    batch_delay_ms: 0
  pharmacies:
    batch_delay_ms: 0
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_workbook(path: Path, sheets: dict[str, list[dict[str, Any]]]) -> Path:
    """Write a real .xlsx; the first dict key order gives the header row."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False)
    return path


@pytest.fixture()
def workbook_factory(tmp_path: Path):
    def _make(name: str, rows: list[dict[str, Any]], extra_sheets: dict[str, list[dict[str, Any]]] | None = None) -> Path:
        sheets = {"Datos": rows}
        sheets.update(extra_sheets or {})
        return make_workbook(tmp_path / name, sheets)
    return _make


class FakeBulkClient:
    """In-memory stand-in for ApiClient.bulk_create.

    Every record is created unless its batch number (1-based) is listed in
    ``fail_batches`` (transport failure) or its in-batch index is listed in
    ``reject`` for that batch.
    """

    def __init__(
        self,
        fail_batches: dict[int, str] | None = None,
        reject: dict[int, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.fail_batches = fail_batches or {}
        self.reject = reject or {}
        self.calls: list[tuple[str, str, list[Any]]] = []

    def bulk_create(self, path: str, payload_key: str, records) -> BulkCreateResponse:
        self.calls.append((path, payload_key, list(records)))
        batch_number = len(self.calls)
        if batch_number in self.fail_batches:
            raise ApiError(self.fail_batches[batch_number], status_code=500)
        errors = self.reject.get(batch_number, [])
        failed = len(errors)
        return BulkCreateResponse(
            total=len(records), created=len(records) - failed, failed=failed, errors=errors
        )


@pytest.fixture()
def fake_client() -> FakeBulkClient:
    return FakeBulkClient()


@pytest.fixture()
def fake_client_factory():
    return FakeBulkClient


@pytest.fixture(autouse=True)
def _reset_logger_state():
    yield
    reset_logging()
