from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pharma_bulk.api.client import ApiError, BulkCreateResponse
from pharma_bulk.models.batch_result import BatchResult, ResultAccumulator, RowError
from pharma_bulk.models.candidates import CandidateRecord
from pharma_bulk.models.import_context import ImportContext
from pharma_bulk.services.entities import EntityPolicy
from pharma_bulk.services.progress import ProgressListener, publish

"""Batch Submitter.

Drains a candidate list into an entity's bulk-create endpoint:

- contiguous chunks of ``policy.batch_size``, original order preserved
- strictly sequential: chunk N+1 starts after chunk N's response is handled
- tally taken from the server's summary, never inferred from chunk size
- per-row errors re-indexed from batch-relative to file-relative
- a chunk whose request fails outright is counted failed as a whole, one
  "Error en lote N: ..." entry is recorded, and the next chunk still runs
- fixed pause of ``policy.batch_delay_ms`` between chunks; no retries

A cancel event is checked between chunks; once set, remaining chunks are not
submitted.
"""

__all__ = [
    "BatchClient",
    "BatchMetrics",
    "BatchSubmitter",
    "describe_row_error",
    "partition",
]

logger = logging.getLogger(__name__)


class BatchClient(Protocol):
    def bulk_create(
        self, path: str, payload_key: str, records: Sequence[CandidateRecord]
    ) -> BulkCreateResponse: ...


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single bulk-create call."""
    batch_number: int  # 1-based
    batch_size: int
    elapsed_seconds: float
    succeeded: bool  # False when the request failed outright


def partition(records: Sequence[Any], batch_size: int) -> list[tuple[int, Sequence[Any]]]:
    """Split ``records`` into ``(start_index, chunk)`` pairs of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [(start, records[start:start + batch_size]) for start in range(0, len(records), batch_size)]


def describe_row_error(err: Any) -> str:
    """Message for one entry of a bulk response's ``errors`` array.

    Order: explicit ``error`` string, then the ``errors`` list joined with
    ", ", then the JSON of ``errors`` (or of the whole entry).
    """
    if not isinstance(err, dict):
        return json.dumps(err, ensure_ascii=False, default=str)
    msg = err.get("error")
    if isinstance(msg, str) and msg:
        return msg
    errs = err.get("errors")
    if isinstance(errs, list):
        return ", ".join(str(e) for e in errs)
    return json.dumps(errs or err, ensure_ascii=False, default=str)


class BatchSubmitter:
    def __init__(
        self,
        client: BatchClient,
        policy: EntityPolicy,
        *,
        listeners: Iterable[ProgressListener] = (),
        sleep: Callable[[float], None] | None = None,
        cancel_event: threading.Event | None = None,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.client = client
        self.policy = policy
        self.listeners = list(listeners)
        self.cancel_event = cancel_event or threading.Event()
        # default pause wakes up as soon as the run is cancelled
        self._sleep = sleep or self.cancel_event.wait
        self.metrics_callback = metrics_callback

    def _record_response(
        self, acc: ResultAccumulator, start: int, batch_number: int, response: BulkCreateResponse
    ) -> None:
        acc.add_summary(response.created, response.failed)
        for err in response.errors:
            index = err.get("index") if isinstance(err, dict) else None
            message = describe_row_error(err)
            if isinstance(index, int) and not isinstance(index, bool):
                acc.add_error(RowError(row_index=start + index, message=message))
            else:
                acc.add_error(RowError(row_index=None, message=f"Lote {batch_number}: {message}"))

    def submit(
        self,
        records: Sequence[CandidateRecord],
        context: ImportContext,
        on_success: Callable[[BatchResult], None] | None = None,
    ) -> BatchResult:
        """Submit every chunk once and return the frozen result.

        ``on_success`` is called once at the end iff at least one record was
        created.
        """
        chunks = partition(records, self.policy.batch_size)
        acc = ResultAccumulator(total_count=len(records), total_batches=len(chunks))
        path = self.policy.path(context)
        delay = self.policy.batch_delay_ms / 1000.0
        cancelled = False

        logger.info(
            "uploading %d %s in %d batch(es) of %d to %s",
            len(records), self.policy.name, len(chunks), self.policy.batch_size, path,
        )

        for i, (start, chunk) in enumerate(chunks):
            if i > 0 and delay > 0 and not self.cancel_event.is_set():
                self._sleep(delay)
            if self.cancel_event.is_set():
                cancelled = True
                logger.warning("upload cancelled; %d batch(es) not submitted", len(chunks) - i)
                break

            batch_number = i + 1
            t0 = time.perf_counter()
            succeeded = True
            try:
                response = self.client.bulk_create(path, self.policy.payload_key, chunk)
                self._record_response(acc, start, batch_number, response)
            except ApiError as e:
                succeeded = False
                logger.warning("batch %d/%d failed: %s", batch_number, len(chunks), e.message)
                acc.add_summary(0, len(chunk))
                acc.add_error(RowError(row_index=None, message=f"Error en lote {batch_number}: {e.message}"))
            finally:
                if self.metrics_callback is not None:
                    self.metrics_callback(
                        BatchMetrics(
                            batch_number=batch_number,
                            batch_size=len(chunk),
                            elapsed_seconds=time.perf_counter() - t0,
                            succeeded=succeeded,
                        )
                    )

            acc.attempted_batches = batch_number
            publish(self.listeners, acc.snapshot())

        result = acc.freeze(cancelled=cancelled)
        if on_success is not None and result.created_count > 0:
            on_success(result)
        return result
