"""Result rows produced by the analytics catalog."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, field_serializer

# ============================================================================
# Patient & utilization rows
# ============================================================================


class PatientDirectoryRow(BaseModel):
    """Patient name and city."""

    first_name: str
    last_name: str
    city: str | None


class CityCount(BaseModel):
    """Number of patients living in a city."""

    city: str
    patient_count: int


class VisitTypeCount(BaseModel):
    """Number of visits of one type."""

    visit_type: str
    visit_count: int


class PatientVisitSpan(BaseModel):
    """First and last visit of a patient."""

    patient_id: int
    first_visit: datetime
    last_visit: datetime
    total_visits: int


class VisitDiagnosisCount(BaseModel):
    """Number of diagnoses recorded on a visit."""

    visit_id: int
    num_diagnoses: int


class PatientRef(BaseModel):
    """Patient identity for cohort listings."""

    patient_id: int
    first_name: str
    last_name: str


class ERVisitorRow(BaseModel):
    """Patient with repeated ER visits inside the window."""

    patient_id: int
    patient_name: str
    er_visits: int


class MonthlyVisitBreakdown(BaseModel):
    """Visits in one calendar month, one column per visit type."""

    month: str
    outpatient: int = 0
    inpatient: int = 0
    er: int = 0
    telemedicine: int = 0


class VisitSequenceRow(BaseModel):
    """Visit numbered within its patient's history, starting at 1."""

    visit_id: int
    patient_id: int
    visit_datetime: datetime
    visit_seq: int


class DrugCount(BaseModel):
    """Number of prescriptions of one drug."""

    drug_name: str
    times_prescribed: int


class LabAbnormalityRate(BaseModel):
    """Share of High or Low results for one test."""

    test_name: str
    total_tests: int
    abnormal_count: int
    abnormal_pct: Decimal

    @field_serializer("abnormal_pct", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


# ============================================================================
# Financial rows
# ============================================================================


class BillingStatusSummary(BaseModel):
    """Billed amounts versus collections for one payment status."""

    payment_status: str
    total_billed: Decimal
    total_patient_pay: Decimal
    total_insurance_covered: Decimal

    @field_serializer(
        "total_billed", "total_patient_pay", "total_insurance_covered", when_used="json"
    )
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class DoctorRevenue(BaseModel):
    """Gross billed amount of a doctor's visits."""

    doctor_id: int
    doctor_name: str
    total_revenue: Decimal

    @field_serializer("total_revenue", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class LatePayment(BaseModel):
    """Bill paid more than the allowed number of days after the visit."""

    bill_id: int
    visit_id: int
    visit_datetime: datetime
    paid_date: date
    delayed_days: int


class CoverageRatio(BaseModel):
    """Average insurer and patient share of the bill for one provider."""

    insurance_provider: str | None
    avg_coverage_pct: Decimal
    avg_patient_share_pct: Decimal

    @field_serializer("avg_coverage_pct", "avg_patient_share_pct", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)
