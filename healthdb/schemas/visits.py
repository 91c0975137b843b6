"""Visit schemas and the clinical records owned by a visit."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

# ============================================================================
# Enumerations
# ============================================================================


class VisitType(str, Enum):
    """Visit type enumeration."""

    OUTPATIENT = "Outpatient"
    INPATIENT = "Inpatient"
    ER = "ER"
    TELEMEDICINE = "Telemedicine"


class LabFlag(str, Enum):
    """Where a lab result falls relative to its reference range."""

    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"


# ============================================================================
# Records
# ============================================================================


class Visit(BaseModel):
    """One encounter between a patient and a doctor."""

    visit_id: int
    patient_id: int
    doctor_id: int
    visit_datetime: datetime
    visit_type: VisitType
    height_cm: Decimal | None = Field(None, ge=0, max_digits=5, decimal_places=1)
    weight_kg: Decimal | None = Field(None, ge=0, max_digits=6, decimal_places=1)
    systolic_bp: int | None = Field(None, ge=0)
    diastolic_bp: int | None = Field(None, ge=0)
    heart_rate: int | None = Field(None, ge=0)
    notes: str | None = Field(None, max_length=255)

    model_config = {"from_attributes": True, "use_enum_values": True}


class Diagnosis(BaseModel):
    """ICD-10 diagnosis recorded during a visit."""

    diag_id: int
    visit_id: int
    icd10_code: str = Field(..., min_length=1, max_length=10)
    diagnosis_desc: str = Field(..., min_length=1, max_length=255)
    is_primary: bool = False

    model_config = {"from_attributes": True}


class Prescription(BaseModel):
    """Drug prescribed during a visit."""

    prescription_id: int
    visit_id: int
    drug_name: str = Field(..., min_length=1, max_length=80)
    dosage_mg: int | None = Field(None, ge=0)
    frequency: str | None = Field(None, max_length=10)
    days_supply: int | None = Field(None, ge=0)
    refills: int | None = Field(None, ge=0)

    model_config = {"from_attributes": True}


class LabResult(BaseModel):
    """Lab test result taken during a visit."""

    lab_id: int
    visit_id: int
    test_name: str = Field(..., min_length=1, max_length=60)
    result_value: Decimal | None = None
    unit: str | None = Field(None, max_length=20)
    ref_low: Decimal | None = None
    ref_high: Decimal | None = None
    flag: LabFlag | None = None

    model_config = {"from_attributes": True, "use_enum_values": True}

    @property
    def derived_flag(self) -> str | None:
        """Flag recomputed from the reference range, falling back to the stored one."""
        return derive_lab_flag(self.result_value, self.ref_low, self.ref_high, self.flag)


def derive_lab_flag(
    result_value: Decimal | None,
    ref_low: Decimal | None,
    ref_high: Decimal | None,
    stored_flag: str | None = None,
) -> str | None:
    """
    Classify a result against its reference range.

    A bound that is present and crossed decides the flag. A value inside a
    complete range is Normal. Anything else keeps the stored flag.
    """
    if result_value is None:
        return stored_flag
    if ref_low is not None and result_value < ref_low:
        return LabFlag.LOW.value
    if ref_high is not None and result_value > ref_high:
        return LabFlag.HIGH.value
    if ref_low is not None and ref_high is not None:
        return LabFlag.NORMAL.value
    return stored_flag
