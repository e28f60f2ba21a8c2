from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from pharma_bulk.models.candidates import (
    CandidateRecord,
    DoctorCandidate,
    MunicipalityCandidate,
    PharmacyCandidate,
    SpecialtyCandidate,
    StateCandidate,
    SubPharmacyCandidate,
)
from pharma_bulk.models.config_models import EntityOverride
from pharma_bulk.models.import_context import ImportContext
from pharma_bulk.services.mapper import pick_flag, pick_text

"""Entity policies for bulk imports.

Every importable entity is described by one EntityPolicy: how a raw row maps
to a candidate, where candidates are posted, how big the batches are and how
long to pause between them, which selections must be made first, and what
the downloadable template looks like. The Batch Submitter and the Template
Exporter are generic over these policies.
"""

__all__ = [
    "EntityPolicy",
    "ENTITIES",
    "UnknownEntityError",
    "get_policy",
]

RowMapper = Callable[[Mapping[str, Any], ImportContext, Mapping[str, Any]], CandidateRecord]


class UnknownEntityError(KeyError):
    pass


@dataclass(frozen=True)
class EntityPolicy:
    name: str  # CLI / config key
    label: str  # plural shown to the user
    payload_key: str  # key of the array in the bulk-create body
    endpoint: Callable[[ImportContext], str]
    map_row: RowMapper
    batch_size: int
    batch_delay_ms: int
    required_context: tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)
    template_sheet: str = "Datos"
    template_rows: tuple[Mapping[str, Any], ...] = ()
    template_filename: Callable[[ImportContext], str] | None = None

    def map(self, row: Mapping[str, Any], context: ImportContext) -> CandidateRecord:
        return self.map_row(row, context, self.defaults)

    def path(self, context: ImportContext) -> str:
        return self.endpoint(context)

    def filename(self, context: ImportContext) -> str:
        if self.template_filename is not None:
            return self.template_filename(context)
        return f"plantilla_{self.name}.xlsx"

    @property
    def template_headers(self) -> list[str]:
        return list(self.template_rows[0].keys()) if self.template_rows else []

    def with_overrides(self, override: EntityOverride | None) -> EntityPolicy:
        if override is None:
            return self
        changes: dict[str, Any] = {}
        if override.batch_size is not None:
            changes["batch_size"] = override.batch_size
        if override.batch_delay_ms is not None:
            changes["batch_delay_ms"] = override.batch_delay_ms
        return replace(self, **changes) if changes else self


# --- row mappers -----------------------------------------------------------

def _map_municipality(row: Mapping[str, Any], ctx: ImportContext, defaults: Mapping[str, Any]) -> MunicipalityCandidate:
    return MunicipalityCandidate(
        state_id=ctx.state_id,  # type: ignore[arg-type]
        name=pick_text(row, "Nombre", "name"),
        code=pick_text(row, "Código", "code"),
        status=pick_flag(row, "Estado", "status", default=defaults["status"]),
    )


def _map_state(row: Mapping[str, Any], ctx: ImportContext, defaults: Mapping[str, Any]) -> StateCandidate:
    return StateCandidate(
        country_id=ctx.country_id,  # type: ignore[arg-type]
        name=pick_text(row, "Nombre", "name"),
        code=pick_text(row, "Código", "code"),
        status=pick_flag(row, "Estado", "status", default=defaults["status"]),
    )


def _map_pharmacy(row: Mapping[str, Any], ctx: ImportContext, defaults: Mapping[str, Any]) -> PharmacyCandidate:
    return PharmacyCandidate(
        country_name=pick_text(row, "País", "country_name"),
        state_name=pick_text(row, "Ciudad/Provincia", "state_name"),
        municipality_name=pick_text(row, "Municipio", "municipality_name"),
        legal_name=pick_text(row, "Razón Social", "legal_name"),
        commercial_name=pick_text(row, "Nombre Comercial", "commercial_name"),
        identification_number=pick_text(row, "RNC", "identification_number"),
        street_address=pick_text(row, "Dirección", "street_address"),
        phone=pick_text(row, "Teléfono", "phone"),
        email=pick_text(row, "Email", "email"),
        administrator_name=pick_text(row, "Administrador", "administrator_name"),
        is_chain=pick_flag(row, "Es Cadena", "is_chain", default=defaults["is_chain"]),
        distributor_id=ctx.distributor_id,  # type: ignore[arg-type]
    )


def _map_sub_pharmacy(row: Mapping[str, Any], ctx: ImportContext, defaults: Mapping[str, Any]) -> SubPharmacyCandidate:
    return SubPharmacyCandidate(
        state_id=ctx.state_id,  # type: ignore[arg-type]
        municipality_id=ctx.municipality_id,  # type: ignore[arg-type]
        commercial_name=pick_text(row, "Nombre Comercial", "commercial_name"),
        street_address=pick_text(row, "Dirección", "street_address"),
        phone=pick_text(row, "Teléfono", "phone"),
        email=pick_text(row, "Email", "email"),
        administrator_name=pick_text(row, "Administrador", "administrator_name"),
        distributor_id=ctx.distributor_id,  # type: ignore[arg-type]
    )


def _map_specialty(row: Mapping[str, Any], ctx: ImportContext, defaults: Mapping[str, Any]) -> SpecialtyCandidate:
    return SpecialtyCandidate(
        name=pick_text(row, "Nombre", "name"),
        description=pick_text(row, "Descripción", "description"),
    )


def _map_doctor(row: Mapping[str, Any], ctx: ImportContext, defaults: Mapping[str, Any]) -> DoctorCandidate:
    return DoctorCandidate(
        country_id=ctx.country_id,  # type: ignore[arg-type]
        name=pick_text(row, "Nombre", "name"),
        email=pick_text(row, "Email", "email"),
        phone=pick_text(row, "Teléfono", "phone"),
        license_number=pick_text(row, "Licencia", "license_number"),
        bio=pick_text(row, "Biografía", "bio"),
        specialties=tuple(ctx.specialties),
    )


def _sub_pharmacy_filename(ctx: ImportContext) -> str:
    name = re.sub(r"\s", "_", ctx.pharmacy_name or "farmacia")
    return f"plantilla_sucursales_{name}.xlsx"


# --- registry --------------------------------------------------------------

_POLICIES: tuple[EntityPolicy, ...] = (
    EntityPolicy(
        name="municipalities",
        label="municipios/cantones",
        payload_key="municipalities",
        endpoint=lambda ctx: f"/administrator/states/{ctx.state_id}/municipalities/bulk",
        map_row=_map_municipality,
        batch_size=50,
        batch_delay_ms=300,
        required_context=("state_id",),
        defaults={"status": True},
        template_sheet="Municipios",
        template_rows=(
            {"Nombre": "Santo Domingo Este", "Código": "SDE", "Estado": "SI"},
            {"Nombre": "Santo Domingo Norte", "Código": "SDN", "Estado": "SI"},
            {"Nombre": "Santo Domingo Oeste", "Código": "SDO", "Estado": "SI"},
        ),
        template_filename=lambda ctx: "plantilla_municipios_cantones.xlsx",
    ),
    EntityPolicy(
        name="states",
        label="ciudades/provincias",
        payload_key="states",
        endpoint=lambda ctx: f"/administrator/countries/{ctx.country_id}/states/bulk",
        map_row=_map_state,
        batch_size=50,
        batch_delay_ms=300,
        required_context=("country_id",),
        defaults={"status": True},
        template_sheet="Ciudades",
        template_rows=(
            {"Nombre": "Santo Domingo", "Código": "SD", "Estado": "SI"},
            {"Nombre": "Santiago", "Código": "STI", "Estado": "SI"},
            {"Nombre": "La Altagracia", "Código": "LA", "Estado": "SI"},
        ),
        template_filename=lambda ctx: "plantilla_ciudades_provincias.xlsx",
    ),
    EntityPolicy(
        name="pharmacies",
        label="farmacias",
        payload_key="pharmacies",
        endpoint=lambda ctx: "/administrator/pharmacies/bulk",
        map_row=_map_pharmacy,
        batch_size=10,
        batch_delay_ms=500,
        required_context=("distributor_id",),
        defaults={"is_chain": False},
        template_sheet="Farmacias",
        template_rows=(
            {
                "País": "República Dominicana",
                "Ciudad/Provincia": "Santo Domingo",
                "Municipio": "Santo Domingo Este",
                "Razón Social": "Farmacia Ejemplo S.A.",
                "Nombre Comercial": "Farmacia Ejemplo",
                "RNC": "012345678",
                "Dirección": "Calle Principal #123",
                "Teléfono": "809-555-1234",
                "Email": "farmacia@example.com",
                "Administrador": "Juan Pérez",
                "Es Cadena": "NO",
            },
        ),
        template_filename=lambda ctx: "plantilla_farmacias.xlsx",
    ),
    EntityPolicy(
        name="sub_pharmacies",
        label="sucursales",
        payload_key="sub_pharmacies",
        endpoint=lambda ctx: f"/administrator/pharmacies/{ctx.pharmacy_id}/sub-pharmacies/bulk",
        map_row=_map_sub_pharmacy,
        batch_size=10,
        batch_delay_ms=500,
        required_context=("pharmacy_id", "state_id", "municipality_id", "distributor_id"),
        template_sheet="Sucursales",
        template_rows=(
            {
                "Nombre Comercial": "Sucursal Centro",
                "Dirección": "Calle Principal #123",
                "Teléfono": "809-555-1234",
                "Email": "sucursal1@farmacia.com",
                "Administrador": "Juan Pérez",
            },
        ),
        template_filename=_sub_pharmacy_filename,
    ),
    EntityPolicy(
        name="specialties",
        label="especialidades",
        payload_key="specialties",
        endpoint=lambda ctx: "/administrator/specialties/bulk",
        map_row=_map_specialty,
        batch_size=50,
        batch_delay_ms=300,
        template_sheet="Especialidades",
        template_rows=(
            {"Nombre": "Cardiología", "Descripción": "Estudio y tratamiento de las enfermedades del corazón"},
            {"Nombre": "Dermatología", "Descripción": "Estudio de la piel"},
            {"Nombre": "Pediatría", "Descripción": "Estudio del niño y sus enfermedades"},
        ),
        template_filename=lambda ctx: "plantilla_especialidades.xlsx",
    ),
    EntityPolicy(
        name="doctors",
        label="doctores",
        payload_key="doctors",
        endpoint=lambda ctx: "/administrator/doctors/bulk",
        map_row=_map_doctor,
        batch_size=50,
        batch_delay_ms=300,
        required_context=("country_id", "specialties"),
        template_sheet="Doctores",
        template_rows=(
            {
                "Nombre": "Dr. Juan Pérez",
                "Email": "juan.perez@hospital.com",
                "Teléfono": "809-555-1234",
                "Licencia": "MED-12345",
                "Biografía": "Cardiólogo con 15 años de experiencia",
            },
            {
                "Nombre": "Dra. María García",
                "Email": "maria.garcia@clinica.com",
                "Teléfono": "809-555-5678",
                "Licencia": "MED-67890",
                "Biografía": "Pediatra certificada",
            },
        ),
        template_filename=lambda ctx: "plantilla_doctores.xlsx",
    ),
)

ENTITIES: dict[str, EntityPolicy] = {p.name: p for p in _POLICIES}


def get_policy(name: str, override: EntityOverride | None = None) -> EntityPolicy:
    try:
        policy = ENTITIES[name]
    except KeyError:
        raise UnknownEntityError(
            f"unknown entity {name!r}; expected one of {sorted(ENTITIES)}"
        ) from None
    return policy.with_overrides(override)
