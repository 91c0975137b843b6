"""Visits table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Table,
)

from healthdb.models.base import metadata

visits = Table(
    "visits",
    metadata,
    Column("visit_id", Integer, primary_key=True, autoincrement=False),
    # Ownership / references
    Column(
        "patient_id",
        Integer,
        ForeignKey("patients.patient_id"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        Integer,
        ForeignKey("doctors.doctor_id"),
        nullable=False,
        index=True,
    ),
    # Encounter details
    Column("visit_datetime", DateTime, nullable=False, index=True),
    Column("visit_type", String(20), nullable=False),
    # Vitals
    Column("height_cm", Numeric(5, 1)),
    Column("weight_kg", Numeric(6, 1)),
    Column("systolic_bp", SmallInteger),
    Column("diastolic_bp", SmallInteger),
    Column("heart_rate", SmallInteger),
    Column("notes", String(255)),
    # Constraints
    CheckConstraint(
        "visit_type IN ('Outpatient', 'Inpatient', 'ER', 'Telemedicine')",
        name="visits_visit_type_check",
    ),
)
