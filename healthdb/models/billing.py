"""Billing table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
)

from healthdb.models.base import metadata

billing = Table(
    "billing",
    metadata,
    Column("bill_id", Integer, primary_key=True, autoincrement=False),
    # At most one bill per visit
    Column(
        "visit_id",
        Integer,
        ForeignKey("visits.visit_id"),
        nullable=False,
        unique=True,
        index=True,
    ),
    # Amounts (total_cost = insurance_covered + patient_pay)
    Column("total_cost", Numeric(10, 2), nullable=False),
    Column("insurance_covered", Numeric(10, 2), nullable=False),
    Column("patient_pay", Numeric(10, 2), nullable=False),
    # Payment state, null while unpaid
    Column("payment_status", String(10), nullable=False, index=True),
    Column("paid_date", Date, nullable=True),
    Column("payment_method", String(20), nullable=True),
    # Constraints
    CheckConstraint(
        "payment_status IN ('Paid', 'Pending', 'Denied', 'Partial')",
        name="billing_payment_status_check",
    ),
    CheckConstraint(
        "payment_method IS NULL OR payment_method IN ('Card', 'Cash', 'Online', 'InsuranceOnly')",
        name="billing_payment_method_check",
    ),
)
