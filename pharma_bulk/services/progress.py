from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from pharma_bulk.models.batch_result import ProgressSnapshot

"""Progress reporting for batch uploads.

The Batch Submitter publishes a ProgressSnapshot after every chunk to any
number of listeners. Listeners are advisory: an exception raised by one is
logged and the upload carries on.

BatchProgressTracker is the terminal listener: a single tqdm bar, shown only
when stdout is a TTY so CI logs are not filled with control sequences.
"""

__all__ = [
    "ProgressListener",
    "BatchProgressTracker",
    "is_tty_enabled",
    "publish",
]

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressSnapshot], None]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and a progress bar should be drawn."""
    return sys.stdout.isatty()


def publish(listeners: Iterable[ProgressListener], snapshot: ProgressSnapshot) -> None:
    """Deliver ``snapshot`` to every listener; failures are logged, never raised."""
    for listener in listeners:
        try:
            listener(snapshot)
        except Exception as e:
            logger.warning("progress listener %r failed: %s", listener, e)


class BatchProgressTracker:
    """tqdm progress bar over the batches of one upload."""

    def __init__(self, total_batches: int, *, description: str = "Uploading") -> None:
        self.total_batches = total_batches
        self.description = description
        self.last: ProgressSnapshot | None = None

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_batches,
                desc=description,
                unit="batch",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def __call__(self, snapshot: ProgressSnapshot) -> None:
        advanced = snapshot.batch_index - (self.last.batch_index if self.last else 0)
        self.last = snapshot
        if self.enabled and self.pbar is not None:
            self.pbar.update(advanced)
            self.pbar.set_postfix(
                created=snapshot.created_count,
                failed=snapshot.failed_count,
                rows=f"{snapshot.processed_count}/{snapshot.total_count}",
            )
        else:
            logger.debug(
                "batch %d/%d (%d%%) created=%d failed=%d",
                snapshot.batch_index,
                snapshot.total_batches,
                snapshot.percentage,
                snapshot.created_count,
                snapshot.failed_count,
            )

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> BatchProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
