from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""Candidate records: mapped spreadsheet rows ready for a bulk-create call.

One dataclass per entity type. Every field is always present; text fields
fall back to "" and flags to the entity's default. Required-field validation
is the server's job, so nothing here rejects a record.
"""

__all__ = [
    "CandidateRecord",
    "MunicipalityCandidate",
    "StateCandidate",
    "PharmacyCandidate",
    "SubPharmacyCandidate",
    "SpecialtyCandidate",
    "DoctorCandidate",
]


class CandidateRecord:
    """Mixin giving every candidate its JSON payload form."""

    def to_payload(self) -> dict[str, Any]:
        data = asdict(self)  # type: ignore[call-overload]
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data


@dataclass(frozen=True)
class MunicipalityCandidate(CandidateRecord):
    state_id: int
    name: str
    code: str
    status: bool


@dataclass(frozen=True)
class StateCandidate(CandidateRecord):
    country_id: int
    name: str
    code: str
    status: bool


@dataclass(frozen=True)
class PharmacyCandidate(CandidateRecord):
    country_name: str
    state_name: str
    municipality_name: str
    legal_name: str
    commercial_name: str
    identification_number: str  # RNC, kept as text to preserve leading zeros
    street_address: str
    phone: str
    email: str
    administrator_name: str
    is_chain: bool
    distributor_id: int


@dataclass(frozen=True)
class SubPharmacyCandidate(CandidateRecord):
    state_id: int
    municipality_id: int
    commercial_name: str
    street_address: str
    phone: str
    email: str
    administrator_name: str
    distributor_id: int


@dataclass(frozen=True)
class SpecialtyCandidate(CandidateRecord):
    name: str
    description: str


@dataclass(frozen=True)
class DoctorCandidate(CandidateRecord):
    country_id: int
    name: str
    email: str
    phone: str
    license_number: str
    bio: str
    specialties: tuple[int, ...]
