from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from pharma_bulk.models.batch_result import BatchResult
from pharma_bulk.models.error_record import BATCH_FAILED, ROW_REJECTED, ErrorRecord

"""Error log generation & buffering.

- JSON Lines, fixed schema (no extra keys)
- One ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC) per process, created lazily
- Records are buffered and written on ``flush()``
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Not thread safe; an import run is strictly serial.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend_from_result(self, file: str, entity: str, result: BatchResult) -> None:
        """Buffer one record per error of a finished run."""
        for err in result.errors:
            if err.row_index is None:
                self.append(ErrorRecord.create(file, entity, -1, BATCH_FAILED, err.message))
            else:
                self.append(
                    ErrorRecord.create(file, entity, err.row_index + 1, ROW_REJECTED, err.message)
                )

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file.

        Returns the file path, or None when nothing was buffered (no empty
        log files are created).
        """
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
