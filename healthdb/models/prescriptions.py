"""Prescriptions table model using SQLAlchemy Core."""

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from healthdb.models.base import metadata

prescriptions = Table(
    "prescriptions",
    metadata,
    Column("prescription_id", Integer, primary_key=True, autoincrement=False),
    Column(
        "visit_id",
        Integer,
        ForeignKey("visits.visit_id"),
        nullable=False,
        index=True,
    ),
    Column("drug_name", String(80), nullable=False, index=True),
    Column("dosage_mg", Integer),
    # OD, BID, TID, QHS, PRN
    Column("frequency", String(10)),
    Column("days_supply", Integer),
    Column("refills", Integer),
)
