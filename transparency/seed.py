"""
transparency/seed.py

Seed the ministry catalog.

Rules:
- Safe to run multiple times (idempotent): match by code, keep names in sync.
- The catalog only labels ledger ids; departments that appear on the ledger
  but not here are still reported, under their raw code.
"""

from __future__ import annotations

from .extensions import db
from .models import Department


DEFAULT_DEPARTMENTS = [
    # code, name, name_ms
    ("MOH", "Ministry of Health", "Kementerian Kesihatan"),
    ("MOE", "Ministry of Education", "Kementerian Pendidikan"),
    ("MOT", "Ministry of Transport", "Kementerian Pengangkutan"),
    ("MOF", "Ministry of Finance", "Kementerian Kewangan"),
    ("MOD", "Ministry of Defence", "Kementerian Pertahanan"),
    ("MOHA", "Ministry of Home Affairs", "Kementerian Dalam Negeri"),
    ("MOSTI", "Ministry of Science, Technology and Innovation", "Kementerian Sains, Teknologi dan Inovasi"),
    ("MOTAC", "Ministry of Tourism, Arts and Culture", "Kementerian Pelancongan, Seni dan Budaya"),
]


def seed_departments() -> int:
    """
    Create missing Department rows and refresh names of existing ones.

    Returns the number of rows created.
    """
    created = 0
    for idx, (code, name, name_ms) in enumerate(DEFAULT_DEPARTMENTS):
        exists = Department.query.filter_by(code=code).first()
        if exists:
            exists.name = name
            exists.name_ms = name_ms
            exists.sort_order = idx
            continue

        db.session.add(
            Department(
                code=code,
                name=name,
                name_ms=name_ms,
                sort_order=idx,
                is_active=True,
            )
        )
        created += 1

    db.session.commit()
    return created


def department_catalog() -> dict[str, Department]:
    """Active catalog entries keyed by code."""
    rows = (
        Department.query.filter_by(is_active=True)
        .order_by(Department.sort_order.asc(), Department.code.asc())
        .all()
    )
    return {row.code: row for row in rows}
