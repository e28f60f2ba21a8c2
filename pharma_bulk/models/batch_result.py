from __future__ import annotations

import math
from dataclasses import dataclass, field

"""Result models for one bulk import run.

RowError / BatchResult are what the user finally sees; ResultAccumulator is
the mutable tally the Batch Submitter grows chunk by chunk and freezes into a
BatchResult once every chunk has been attempted. ProgressSnapshot is the
advisory view published after each chunk.
"""

__all__ = [
    "RowError",
    "BatchResult",
    "ResultAccumulator",
    "ProgressSnapshot",
]


@dataclass(frozen=True)
class RowError:
    """A single failure reported to the user.

    row_index is the 0-based position of the record in the whole candidate
    list (batch start + index inside the batch). None marks a synthetic
    batch-level error, whose message already names the batch.
    """
    row_index: int | None
    message: str

    def display(self) -> str:
        if self.row_index is None:
            return self.message
        return f"Fila {self.row_index + 1}: {self.message}"


@dataclass(frozen=True)
class BatchResult:
    """Immutable outcome of a completed import run."""
    created_count: int = 0
    failed_count: int = 0
    errors: tuple[RowError, ...] = ()
    total_count: int = 0
    total_batches: int = 0
    attempted_batches: int = 0
    cancelled: bool = False

    @property
    def processed_count(self) -> int:
        return self.created_count + self.failed_count

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0 or bool(self.errors)

    def error_lines(self) -> list[str]:
        return [e.display() for e in self.errors]


@dataclass
class ResultAccumulator:
    """Running tally of a run in progress. Only ever grows."""
    total_count: int
    total_batches: int
    created_count: int = 0
    failed_count: int = 0
    attempted_batches: int = 0
    errors: list[RowError] = field(default_factory=list)

    def add_summary(self, created: int, failed: int) -> None:
        self.created_count += created
        self.failed_count += failed

    def add_error(self, error: RowError) -> None:
        self.errors.append(error)

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            batch_index=self.attempted_batches,
            total_batches=self.total_batches,
            created_count=self.created_count,
            failed_count=self.failed_count,
            total_count=self.total_count,
        )

    def freeze(self, cancelled: bool = False) -> BatchResult:
        return BatchResult(
            created_count=self.created_count,
            failed_count=self.failed_count,
            errors=tuple(self.errors),
            total_count=self.total_count,
            total_batches=self.total_batches,
            attempted_batches=self.attempted_batches,
            cancelled=cancelled,
        )


@dataclass(frozen=True)
class ProgressSnapshot:
    """Progress published after each chunk (UI / terminal facing only)."""
    batch_index: int  # chunks attempted so far (1-based after the first chunk)
    total_batches: int
    created_count: int
    failed_count: int
    total_count: int

    @property
    def processed_count(self) -> int:
        return self.created_count + self.failed_count

    @property
    def percentage(self) -> int:
        if self.total_batches == 0:
            return 0
        # half-up, so 1 of 8 batches shows 13%
        return math.floor(self.batch_index / self.total_batches * 100 + 0.5)
