"""Diagnoses table model using SQLAlchemy Core."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, false

from healthdb.models.base import metadata

# 0..n per visit, removed together with their visit
diagnoses = Table(
    "diagnoses",
    metadata,
    Column("diag_id", Integer, primary_key=True, autoincrement=False),
    Column(
        "visit_id",
        Integer,
        ForeignKey("visits.visit_id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("icd10_code", String(10), nullable=False, index=True),
    Column("diagnosis_desc", String(255), nullable=False),
    # Advisory only: several rows of one visit may be marked primary
    Column("is_primary", Boolean, nullable=False, server_default=false()),
)
