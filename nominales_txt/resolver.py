"""Resolve which RawRecord keys hold the identifier, quantity and name.

Institutions label the same column differently ("C.U.I.T.", "Cuit/Cuil",
"V.N.", "Nominales ($)"). Keys are normalised and matched by substring
against ordered fragment lists; the first fragment that matches any key
wins, so "Valor Nominal Residual" resolves through ``nominal`` before
``valor``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

IDENTIFIER_FRAGMENTS = ("cuit", "cuil", "ident", "doc")
QUANTITY_FRAGMENTS = ("nominal", "cantidad", "vn", "monto", "precio", "valor")
NAME_FRAGMENTS = ("nombre", "razon", "denominacion", "titular", "apellido")

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class FieldKeys:
    identifier: Optional[str] = None
    quantity: Optional[str] = None
    name: Optional[str] = None

    def as_dict(self) -> dict[str, Optional[str]]:
        return {"identifier": self.identifier, "quantity": self.quantity, "name": self.name}


def normalize_key(label: str) -> str:
    """``"C.U.I.T."`` -> ``"cuit"``. Accented letters are dropped, not folded: ``"Razón"`` -> ``"razn"``."""
    return _NON_ALNUM_RE.sub("", str(label).lower())


def find_key(record: dict[str, Any], fragments: Sequence[str]) -> Optional[str]:
    normalized = [(key, normalize_key(key)) for key in record]
    for fragment in fragments:
        for key, norm in normalized:
            if fragment in norm:
                return key
    return None


def pick_sample_record(records: Sequence[dict[str, Any]]) -> dict[str, Any]:
    for record in records:
        if record:
            return record
    return records[0] if records else {}


def resolve_field_keys(records: Sequence[dict[str, Any]]) -> FieldKeys:
    sample = pick_sample_record(records)
    return FieldKeys(
        identifier=find_key(sample, IDENTIFIER_FRAGMENTS),
        quantity=find_key(sample, QUANTITY_FRAGMENTS),
        name=find_key(sample, NAME_FRAGMENTS),
    )
