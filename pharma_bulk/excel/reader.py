from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import numpy as np
import pandas as pd

"""Spreadsheet decoder.

Reads the FIRST sheet of an .xlsx / .xls workbook into loosely typed rows:
row 1 is the header, every following non-empty row becomes a dict keyed by
header text. Empty cells are left out of the row dict. Other sheets are
ignored.

pandas does the format detection (openpyxl for .xlsx, xlrd for .xls). Cells
are read with ``dtype=object`` so numeric identifiers are not widened to
float columns, and pandas' default NA strings ("NA", "null"...) stay text.
"""

__all__ = [
    "RawRow",
    "SheetData",
    "SpreadsheetDecodeError",
    "UnsupportedFileError",
    "SUPPORTED_EXTENSIONS",
    "read_first_sheet",
    "normalize_sheet",
]

RawRow = dict[str, Any]

SUPPORTED_EXTENSIONS = (".xlsx", ".xls")

PARSE_ERROR_MESSAGE = (
    "Error al leer el archivo Excel. Por favor verifica que el formato sea correcto."
)
EMPTY_FILE_MESSAGE = "El archivo no contiene filas de datos."


class SpreadsheetDecodeError(Exception):
    """The file could not be turned into rows. str(e) is user facing."""


class UnsupportedFileError(SpreadsheetDecodeError):
    """Raised for extensions other than .xlsx / .xls."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RawRow]


def _is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and math.isnan(val):
        return True
    if isinstance(val, str) and val.strip() == "":
        return True
    return val is pd.NaT


def _normalize_value(val: Any) -> Any:
    if isinstance(val, np.generic):
        val = val.item()
    if isinstance(val, str):
        return val.strip()
    # Whole-number floats come back as ints so "8091234567" never becomes "8091234567.0"
    if isinstance(val, float) and val.is_integer():
        return int(val)
    return val


def normalize_sheet(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Turn a header=0 DataFrame into SheetData, skipping fully empty rows."""
    columns = [str(c).strip() for c in df.columns.tolist()]
    rows: list[RawRow] = []
    for raw in df.itertuples(index=False, name=None):
        row: RawRow = {}
        for col, val in zip(columns, raw, strict=False):
            if _is_blank(val):
                continue
            row[col] = _normalize_value(val)
        if row:
            rows.append(row)
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def read_first_sheet(source: Path | BinaryIO, file_name: str | None = None) -> SheetData:
    """Decode the first sheet of a workbook.

    Parameters
    ----------
    source: path to the workbook, or an open binary file object
    file_name: name used for the extension check when ``source`` is a file object

    Raises
    ------
    UnsupportedFileError: extension is not .xlsx / .xls
    SpreadsheetDecodeError: corrupt / unreadable file, or no data rows
    """
    name = file_name or (source.name if isinstance(source, Path) else getattr(source, "name", ""))
    if Path(str(name)).suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileError(
            f"Formato no soportado: {Path(str(name)).name or name!r}. Usa un archivo .xlsx o .xls."
        )

    try:
        xls = pd.ExcelFile(source)
        if not xls.sheet_names:
            raise SpreadsheetDecodeError(EMPTY_FILE_MESSAGE)
        first = xls.sheet_names[0]
        df = xls.parse(first, header=0, dtype=object, keep_default_na=False)
    except SpreadsheetDecodeError:
        raise
    except Exception as e:
        # pandas / openpyxl / xlrd raise a wide variety of types for bad input
        raise SpreadsheetDecodeError(PARSE_ERROR_MESSAGE) from e

    sheet = normalize_sheet(df, str(first))
    if not sheet.rows:
        raise SpreadsheetDecodeError(EMPTY_FILE_MESSAGE)
    return sheet
