"""Billing schemas for record validation and payment updates."""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PAID = "Paid"
    PENDING = "Pending"
    DENIED = "Denied"
    PARTIAL = "Partial"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""

    CARD = "Card"
    CASH = "Cash"
    ONLINE = "Online"
    INSURANCE_ONLY = "InsuranceOnly"


class Billing(BaseModel):
    """Bill for a visit. Amounts satisfy total_cost = insurance_covered + patient_pay."""

    bill_id: int
    visit_id: int
    total_cost: Decimal = Field(..., ge=0, decimal_places=2)
    insurance_covered: Decimal = Field(..., ge=0, decimal_places=2)
    patient_pay: Decimal = Field(..., ge=0, decimal_places=2)
    payment_status: PaymentStatus
    paid_date: date | None = None
    payment_method: PaymentMethod | None = None

    model_config = {"from_attributes": True, "use_enum_values": True}


class PaymentUpdate(BaseModel):
    """Schema for recording a payment against a bill."""

    payment_status: PaymentStatus
    paid_date: date | None = None
    payment_method: PaymentMethod | None = None

    model_config = {"use_enum_values": True}
