from __future__ import annotations

import io
from pathlib import Path

import pandas as pd
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from pharma_bulk.models.import_context import ImportContext
from pharma_bulk.services.entities import EntityPolicy

"""Template exporter.

Builds the downloadable example workbook for an entity: one sheet, the
localized headers the row mapper looks for first, and the policy's example
rows. Nothing here touches the network or the current run.
"""

__all__ = [
    "build_template",
    "write_template",
]

_HEADER_FONT = Font(bold=True)


def build_template(policy: EntityPolicy) -> bytes:
    """Return the template workbook as .xlsx bytes."""
    df = pd.DataFrame(list(policy.template_rows), columns=policy.template_headers)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=policy.template_sheet, index=False)
        ws = writer.sheets[policy.template_sheet]
        for idx, header in enumerate(policy.template_headers, start=1):
            ws.cell(row=1, column=idx).font = _HEADER_FONT
            widest = max([len(str(header))] + [len(str(r.get(header, ""))) for r in policy.template_rows])
            ws.column_dimensions[get_column_letter(idx)].width = max(12, min(48, widest + 4))
    return buffer.getvalue()


def write_template(
    policy: EntityPolicy, directory: Path, context: ImportContext | None = None
) -> Path:
    """Write the template into ``directory`` under its conventional name."""
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / policy.filename(context or ImportContext())
    target.write_bytes(build_template(policy))
    return target
