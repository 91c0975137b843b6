"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    Integer,
    String,
    Table,
)

from healthdb.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("patient_id", Integer, primary_key=True, autoincrement=False),
    # Demographics
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("gender", String(1), nullable=False),
    Column("dob", Date, nullable=False),
    # Contact
    Column("phone", String(20)),
    Column("email", String(100)),
    # Address
    Column("address", String(255)),
    Column("city", String(80), index=True),
    Column("state", String(10)),
    Column("zip", String(10)),
    # Insurance information
    Column("insurance_provider", String(40), index=True),
    Column("insurance_member_id", String(20)),
    CheckConstraint("gender IN ('M', 'F', 'O')", name="patients_gender_check"),
)
