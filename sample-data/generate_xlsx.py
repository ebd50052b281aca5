#!/usr/bin/env python3
"""
Generates sample-data/holders_sample.xlsx, a holder workbook shaped like the
ones settlement desks receive, for trying out nominales-txt.

Run from the repo root:
    python sample-data/generate_xlsx.py

What is baked in:
  Sheet "LECAP"
    - Two preamble rows above the header (title + issue date)
    - Header row 3: "Cuit/Cuil", "Apellido y Nombre", "Valor Nominal"
    - Same CUIT written with and without dashes; first row has no name
    - Argentine-formatted text amounts ("1.000,00", "250,5") and numeric cells
    - A "N/A" CUIT row and a blank row (dropped from the output)
  Sheet "ON Clase 5"
    - Header on row 1 with an unlabelled helper column
  Sheet "Notas"
    - Free text only: no CUIT column, aggregates to nothing
  Sheet "Vacia"
    - Empty sheet (omitted by the loader)
"""

from pathlib import Path
import openpyxl

OUTPUT = Path(__file__).parent / "holders_sample.xlsx"

wb = openpyxl.Workbook()

# ── Sheet 1: LECAP ───────────────────────────────────────────────────────────
ws = wb.active
ws.title = "LECAP"
ws.append(["Licitación LECAP VTO 30/04/26"])
ws.append(["Fecha de emisión", "2026-03-02"])
ws.append(["Cuit/Cuil", "Apellido y Nombre", "Valor Nominal"])
rows = [
    ["20-11111111-1", None,              "1.000,00"],
    ["20111111111",   "Pérez Juan",      200],
    ["27-22222222-2", "Gómez Ana",       "250,5"],
    ["N/A",           "Sin CUIT",        500],
    [None,            None,              None],
    ["30-33333333-3", "Inversora SA",    15000],
]
for row in rows:
    ws.append(row)

# ── Sheet 2: ON Clase 5 ──────────────────────────────────────────────────────
ws_on = wb.create_sheet("ON Clase 5")
ws_on.append(["CUIT", None, "Nombre", "Nominales"])
ws_on.append(["20-44444444-4", "x", "López Marta", 1000])
ws_on.append(["20-44444444-4", "x", "López M.",    "2.500,75"])

# ── Sheet 3: Notas ───────────────────────────────────────────────────────────
ws_notes = wb.create_sheet("Notas")
ws_notes.append(["Observaciones"])
ws_notes.append(["Revisar CUIT duplicados antes de enviar"])

# ── Sheet 4: Vacia (empty) ───────────────────────────────────────────────────
wb.create_sheet("Vacia")

wb.save(OUTPUT)
print(f"Created: {OUTPUT}")
