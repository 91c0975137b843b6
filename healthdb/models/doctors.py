"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import Column, Integer, String, Table

from healthdb.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("doctor_id", Integer, primary_key=True, autoincrement=False),
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=False),
    Column("specialization", String(60), index=True),
    Column("phone", String(20)),
    Column("email", String(100)),
)
