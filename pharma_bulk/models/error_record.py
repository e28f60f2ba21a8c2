from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per rejected row or failed batch. ``row`` is the 1-based data row
of the uploaded spreadsheet, or -1 when a whole batch failed and no single
row can be blamed.
"""

__all__ = [
    "ErrorRecord",
    "ROW_REJECTED",
    "BATCH_FAILED",
]

ROW_REJECTED = "ROW_REJECTED"
BATCH_FAILED = "BATCH_FAILED"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Spreadsheet filename being imported
        entity: Entity type of the import (``municipalities``, ``pharmacies``...)
        row: Row number (1-based). -1 for batch-level failures
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Server or transport error message
    """
    timestamp: str  # ISO8601 UTC
    file: str
    entity: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, entity: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            entity=entity,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON Lines entry (no extra keys)."""
        return json.dumps(asdict(self), ensure_ascii=False)
