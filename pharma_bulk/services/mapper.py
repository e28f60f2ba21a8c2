from __future__ import annotations

from collections.abc import Mapping
from typing import Any

"""Row mapping helpers.

Spreadsheets arrive with either the localized headers of the downloadable
template ("Nombre", "Teléfono"...) or the technical API keys ("name",
"phone"...). Each field is looked up localized-first, then technical, then
falls back to a default. A cell counts as empty when it is missing, None or a
blank string.
"""

__all__ = [
    "TRUTHY_FLAGS",
    "pick",
    "pick_text",
    "pick_flag",
]

# Compared case-insensitively against stripped text cells
TRUTHY_FLAGS = frozenset({"SI", "TRUE"})


def _present(val: Any) -> bool:
    if val is None:
        return False
    if isinstance(val, str):
        return val.strip() != ""
    return True


def pick(row: Mapping[str, Any], *keys: str, default: Any = "") -> Any:
    """Return the first non-empty value among ``keys``, else ``default``."""
    for key in keys:
        val = row.get(key)
        if _present(val):
            return val
    return default


def _as_text(val: Any) -> str:
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    if isinstance(val, bool):
        return "true" if val else "false"
    return str(val).strip()


def pick_text(row: Mapping[str, Any], *keys: str, default: str = "") -> str:
    """Like pick() but always returns text.

    Numeric cells (RNC, phone numbers) are converted to their digits, so a
    value stored as a number in the spreadsheet is submitted as a string.
    """
    val = pick(row, *keys, default=None)
    if val is None:
        return default
    return _as_text(val)


def _is_truthy(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    if isinstance(val, str):
        return val.strip().upper() in TRUTHY_FLAGS
    return False


def pick_flag(row: Mapping[str, Any], *keys: str, default: bool) -> bool:
    """Boolean column lookup.

    ``True`` when any of ``keys`` holds "SI" / "TRUE" (any case) or boolean
    True. Every other value, including an absent cell, yields ``default``.
    Entities choose their own default: status columns default to active,
    the pharmacy chain flag defaults to independent.
    """
    for key in keys:
        if _is_truthy(row.get(key)):
            return True
    return default
