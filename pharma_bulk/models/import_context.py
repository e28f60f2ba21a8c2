from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

"""ImportContext: foreign keys chosen by the operator before a file is mapped.

Each entity policy declares which of these fields it needs; the mapper bakes
them into every candidate record, so the context must be complete before
candidates are derived.
"""

__all__ = [
    "ImportContext",
]

# Labels used in user-facing "missing selection" messages
CONTEXT_LABELS: dict[str, str] = {
    "country_id": "país",
    "state_id": "ciudad/provincia",
    "municipality_id": "municipio",
    "distributor_id": "distribuidor",
    "pharmacy_id": "farmacia",
    "pharmacy_name": "nombre de la farmacia",
    "specialties": "al menos una especialidad",
}


@dataclass(frozen=True)
class ImportContext:
    country_id: int | None = None
    state_id: int | None = None
    municipality_id: int | None = None
    distributor_id: int | None = None
    pharmacy_id: int | None = None
    pharmacy_name: str | None = None
    specialties: tuple[int, ...] = field(default_factory=tuple)

    def missing(self, required: tuple[str, ...]) -> list[str]:
        """Names of required fields that are unset (None, empty string or empty tuple)."""
        out = []
        for name in required:
            value = getattr(self, name)
            if value is None or value == "" or value == ():
                out.append(name)
        return out

    def with_changes(self, **changes: Any) -> ImportContext:
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"unknown context fields: {sorted(unknown)}")
        if "specialties" in changes and changes["specialties"] is not None:
            changes["specialties"] = tuple(changes["specialties"])
        return replace(self, **changes)
