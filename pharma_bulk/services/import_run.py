from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, BinaryIO

from pharma_bulk.excel.reader import SpreadsheetDecodeError, read_first_sheet
from pharma_bulk.models.batch_result import BatchResult, ProgressSnapshot
from pharma_bulk.models.import_context import CONTEXT_LABELS
from pharma_bulk.models.run_state import ImportRunState, RunPhase
from pharma_bulk.services.batch_submitter import BatchClient, BatchMetrics, BatchSubmitter
from pharma_bulk.services.entities import EntityPolicy
from pharma_bulk.services.progress import ProgressListener

"""One import run: file -> raw rows -> candidates -> batches -> result.

ImportRun owns an ImportRunState and is the error boundary of the pipeline:
parse failures, missing selections and failed batches all end up as text on
the state, never as exceptions raised to the caller.

Raw rows are kept after decoding so that any change of selection re-derives
every candidate from them. A file chosen before its selections are complete
is decoded right away and mapped as soon as the selections are made.
"""

__all__ = [
    "ContextMissingError",
    "ImportRun",
    "NO_DATA_MESSAGE",
    "context_missing_message",
]

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No hay datos para cargar"


def context_missing_message(missing: list[str]) -> str:
    labels = [CONTEXT_LABELS.get(name, name) for name in missing]
    if len(labels) == 1:
        joined = labels[0]
    else:
        joined = ", ".join(labels[:-1]) + " y " + labels[-1]
    return f"Debes seleccionar {joined} antes de cargar el archivo"


class ContextMissingError(Exception):
    """Required selections are unset. str(e) is user facing."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(context_missing_message(missing))
        self.missing = missing


class ImportRun:
    def __init__(
        self,
        policy: EntityPolicy,
        client: BatchClient,
        *,
        listeners: Iterable[ProgressListener] = (),
        on_success: Callable[[BatchResult], None] | None = None,
        sleep: Callable[[float], None] | None = None,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.policy = policy
        self.client = client
        self.listeners = list(listeners)
        self.on_success = on_success
        self._sleep = sleep
        self._metrics_callback = metrics_callback
        self._cancel = threading.Event()
        self._close_requested = False
        self.state = ImportRunState()

    # --- lifecycle ---------------------------------------------------------

    def open(self) -> None:
        self._cancel.clear()
        self._close_requested = False
        self.state.reset()

    def close(self) -> None:
        """Discard the run. An upload in progress stops before its next batch."""
        if self.state.phase is RunPhase.UPLOADING:
            self._cancel.set()
            self._close_requested = True
            return
        self.state.reset()

    # --- selection ---------------------------------------------------------

    def set_context(self, **changes: Any) -> None:
        if self.state.phase is RunPhase.UPLOADING:
            raise RuntimeError("cannot change selections while uploading")
        self.state.context = self.state.context.with_changes(**changes)
        if self.state.raw_rows:
            self._derive_candidates()

    def select_file(self, source: Path | BinaryIO, file_name: str | None = None) -> None:
        """Replace the current file and decode it (first sheet only)."""
        self.state.reset(keep_context=True)
        if isinstance(source, Path):
            self.state.file_path = source
        else:
            self.state.file_path = Path(file_name or getattr(source, "name", "upload.xlsx"))
        self.state.phase = RunPhase.FILE_SELECTED
        try:
            sheet = read_first_sheet(source, file_name=file_name)
        except SpreadsheetDecodeError as e:
            logger.error("could not decode %s: %s", self.state.file_path.name, e)
            self.state.errors = [str(e)]
            return
        self.state.raw_rows = sheet.rows
        logger.info("decoded %d row(s) from %s", len(sheet.rows), self.state.file_path.name)
        self._derive_candidates()

    def _require_context(self) -> None:
        missing = self.state.context.missing(self.policy.required_context)
        if missing:
            raise ContextMissingError(missing)

    def _derive_candidates(self) -> None:
        try:
            self._require_context()
        except ContextMissingError as e:
            self.state.candidates = []
            self.state.errors = [str(e)]
            self.state.phase = RunPhase.FILE_SELECTED
            return
        self.state.candidates = [self.policy.map(row, self.state.context) for row in self.state.raw_rows]
        self.state.errors = []
        self.state.phase = RunPhase.PREVIEWING

    # --- upload ------------------------------------------------------------

    def _track(self, snapshot: ProgressSnapshot) -> None:
        self.state.progress = snapshot

    def _refresh(self, result: BatchResult) -> None:
        if self.on_success is None:
            return
        try:
            self.on_success(result)
        except Exception as e:
            # The records are already created; a failed refresh does not undo that
            logger.warning("post-upload refresh failed: %s", e)

    def upload(self) -> BatchResult | None:
        """Submit all candidates. Returns None when blocked by a validation message."""
        try:
            self._require_context()
        except ContextMissingError as e:
            self.state.errors = [str(e)]
            return None
        if self.state.phase is not RunPhase.PREVIEWING or not self.state.candidates:
            self.state.errors = [NO_DATA_MESSAGE]
            return None

        self.state.phase = RunPhase.UPLOADING
        self.state.errors = []
        self.state.progress = None
        submitter = BatchSubmitter(
            self.client,
            self.policy,
            listeners=[self._track, *self.listeners],
            sleep=self._sleep,
            cancel_event=self._cancel,
            metrics_callback=self._metrics_callback,
        )
        result = submitter.submit(self.state.candidates, self.state.context, on_success=self._refresh)

        if self._close_requested:
            self._close_requested = False
            self._cancel.clear()
            self.state.reset()
            return result

        self.state.result = result
        self.state.phase = RunPhase.COMPLETED
        return result

    # --- presentation ------------------------------------------------------

    def banner(self) -> tuple[str, str] | None:
        """``(variant, message)`` for the completed run, variant "success" or "warning"."""
        result = self.state.result
        if result is None:
            return None
        variant = "warning" if result.failed_count > 0 else "success"
        message = f"Se crearon {result.created_count} {self.policy.label} exitosamente."
        if result.failed_count > 0:
            message += f" {result.failed_count} fallaron."
        return variant, message
