#!/usr/bin/env python3
"""Generate synthetic bulk-import workbooks.

Writes a first-sheet workbook with the localized headers of the chosen
entity's template and N synthetic rows, for trying batch sizes and inter-batch
delays against a staging API.

The output follows the layout the decoder expects:
- Row 1: header row (localized column names)
- Row 2+: data rows
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

from pharma_bulk.services.entities import ENTITIES

_STREETS = ["Calle Principal", "Av. Independencia", "Calle El Sol", "Av. 27 de Febrero", "Calle Duarte"]
_FIRST = ["Juan", "María", "Carlos", "Ana", "Luis", "Carmen", "José", "Rosa"]
_LAST = ["Pérez", "García", "López", "Martínez", "Rodríguez", "Santos"]
_PROVINCES = ["Santo Domingo", "Santiago", "La Vega", "Puerto Plata", "San Cristóbal"]


def _people(rng: np.random.Generator, rows: int) -> list[str]:
    return [f"{rng.choice(_FIRST)} {rng.choice(_LAST)}" for _ in range(rows)]


def _phones(rng: np.random.Generator, rows: int) -> list[str]:
    return [f"809-{rng.integers(200, 999)}-{rng.integers(1000, 9999)}" for _ in range(rows)]


def generate_rows(entity: str, rows: int, seed: int = 42) -> pd.DataFrame:
    """Synthetic rows using the entity's localized template headers."""
    rng = np.random.default_rng(seed)
    n = np.arange(1, rows + 1)
    if entity in ("municipalities", "states"):
        data = {
            "Nombre": [f"Localidad {i}" for i in n],
            "Código": [f"L{i:04d}" for i in n],
            "Estado": rng.choice(["SI", "NO"], rows, p=[0.9, 0.1]).tolist(),
        }
    elif entity == "pharmacies":
        data = {
            "País": ["República Dominicana"] * rows,
            "Ciudad/Provincia": rng.choice(_PROVINCES, rows).tolist(),
            "Municipio": [f"Municipio {i % 25 + 1}" for i in n],
            "Razón Social": [f"Farmacia {i} S.R.L." for i in n],
            "Nombre Comercial": [f"Farmacia {i}" for i in n],
            # leading zeros on purpose: RNC must survive as text
            "RNC": [f"{rng.integers(0, 10**9):09d}" for _ in range(rows)],
            "Dirección": [f"{rng.choice(_STREETS)} #{rng.integers(1, 500)}" for _ in range(rows)],
            "Teléfono": _phones(rng, rows),
            "Email": [f"farmacia{i}@example.com" for i in n],
            "Administrador": _people(rng, rows),
            "Es Cadena": rng.choice(["SI", "NO"], rows, p=[0.2, 0.8]).tolist(),
        }
    elif entity == "sub_pharmacies":
        data = {
            "Nombre Comercial": [f"Sucursal {i}" for i in n],
            "Dirección": [f"{rng.choice(_STREETS)} #{rng.integers(1, 500)}" for _ in range(rows)],
            "Teléfono": _phones(rng, rows),
            "Email": [f"sucursal{i}@example.com" for i in n],
            "Administrador": _people(rng, rows),
        }
    elif entity == "specialties":
        data = {
            "Nombre": [f"Especialidad {i}" for i in n],
            "Descripción": [f"Descripción de la especialidad {i}" for i in n],
        }
    elif entity == "doctors":
        data = {
            "Nombre": [f"Dr. {p}" for p in _people(rng, rows)],
            "Email": [f"doctor{i}@example.com" for i in n],
            "Teléfono": _phones(rng, rows),
            "Licencia": [f"MED-{i:05d}" for i in n],
            "Biografía": ["Médico general"] * rows,
        }
    else:
        raise ValueError(f"unknown entity: {entity}")
    return pd.DataFrame(data)


def create_workbook(output_path: Path, entity: str, rows: int, seed: int = 42) -> None:
    policy = ENTITIES[entity]
    df = generate_rows(entity, rows, seed)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=policy.template_sheet, index=False)

    batches = -(-rows // policy.batch_size)
    print(f"Created workbook: {output_path}")
    print(f"  Entity: {entity} ({policy.template_sheet})")
    print(f"  Rows: {rows} -> {batches} batch(es) of {policy.batch_size}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic bulk-import workbooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s farmacias.xlsx --entity pharmacies --rows 500
  %(prog)s municipios.xlsx --entity municipalities --rows 2000 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--entity", choices=sorted(ENTITIES), default="pharmacies")
    parser.add_argument("--rows", type=int, default=500, help="Number of data rows (default: 500)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if args.output.suffix.lower() != ".xlsx":
        print("Error: output file must have .xlsx extension", file=sys.stderr)
        return 1

    create_workbook(args.output, args.entity, args.rows, args.seed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
