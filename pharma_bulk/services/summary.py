from __future__ import annotations

from pharma_bulk.models.batch_result import BatchResult

"""SUMMARY line rendering.

Format:
    SUMMARY entity={name} rows={total} created={created} failed={failed}
    batches={attempted}/{total_batches} errors={n} elapsed_sec={elapsed}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny values
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(entity: str, result: BatchResult, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for a finished upload.

    Examples:
        >>> r = BatchResult(created_count=100, failed_count=50, total_count=150,
        ...                 total_batches=3, attempted_batches=3)
        >>> render_summary_line("municipalities", r, 2.0)
        'SUMMARY entity=municipalities rows=150 created=100 failed=50 batches=3/3 errors=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY entity={entity} "
        f"rows={result.total_count} "
        f"created={result.created_count} "
        f"failed={result.failed_count} "
        f"batches={result.attempted_batches}/{result.total_batches} "
        f"errors={len(result.errors)} "
        f"elapsed_sec={_format_number(elapsed_seconds)}"
    )
