from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pharma_bulk.models.batch_result import BatchResult, ProgressSnapshot
from pharma_bulk.models.candidates import CandidateRecord
from pharma_bulk.models.import_context import ImportContext

"""ImportRunState and RunPhase enum.

State transitions:
    idle -> file_selected -> previewing -> uploading -> completed

A parse failure leaves the run at file_selected with the file retained. The
state only lives for the lifetime of one import dialog / CLI invocation and
is reset on open, on close and whenever the file is replaced.
"""

__all__ = [
    "RunPhase",
    "ImportRunState",
]


class RunPhase(Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    PREVIEWING = "previewing"
    UPLOADING = "uploading"
    COMPLETED = "completed"


@dataclass
class ImportRunState:
    phase: RunPhase = RunPhase.IDLE
    file_path: Path | None = None
    context: ImportContext = field(default_factory=ImportContext)
    raw_rows: list[dict[str, Any]] = field(default_factory=list)
    candidates: list[CandidateRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)  # blocking messages (parse / context)
    progress: ProgressSnapshot | None = None
    result: BatchResult | None = None

    def reset(self, keep_context: bool = False) -> None:
        """Return every field to its initial value.

        keep_context keeps the operator's selections (used when only the file
        is being replaced).
        """
        fresh = ImportRunState(context=self.context if keep_context else ImportContext())
        self.__dict__.update(fresh.__dict__)

    @property
    def created_count(self) -> int:
        return self.result.created_count if self.result else 0

    @property
    def failed_count(self) -> int:
        return self.result.failed_count if self.result else 0
