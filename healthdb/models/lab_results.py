"""Lab results table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
)

from healthdb.models.base import metadata

lab_results = Table(
    "lab_results",
    metadata,
    Column("lab_id", Integer, primary_key=True, autoincrement=False),
    Column(
        "visit_id",
        Integer,
        ForeignKey("visits.visit_id"),
        nullable=False,
        index=True,
    ),
    Column("test_name", String(60), nullable=False, index=True),
    Column("result_value", Numeric(10, 2)),
    Column("unit", String(20)),
    Column("ref_low", Numeric(10, 2)),
    Column("ref_high", Numeric(10, 2)),
    # Stored as delivered; analytics recompute it from the reference range
    Column("flag", String(10)),
    CheckConstraint(
        "flag IS NULL OR flag IN ('Low', 'Normal', 'High')",
        name="lab_results_flag_check",
    ),
)
