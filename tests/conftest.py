"""Shared pytest fixtures."""

import os
from collections.abc import Callable, Generator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from dotenv import load_dotenv
from sqlalchemy.engine import Engine

from healthdb.database import create_db_engine, drop_database, init_database
from healthdb.schemas.billing import Billing
from healthdb.schemas.doctors import Doctor
from healthdb.schemas.patients import Patient
from healthdb.schemas.visits import Diagnosis, LabResult, Prescription, Visit
from healthdb.services import AnalyticsService, RecordStore

# Load environment variables from .env file
load_dotenv()


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Create a fresh database for each test."""
    # Set TEST_DATABASE_URL to run against another database
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'healthdb_test.sqlite3'}"
    engine = create_db_engine(url, echo=False)

    drop_database(engine)
    init_database(engine)

    yield engine

    drop_database(engine)
    engine.dispose()


@pytest.fixture
def as_of() -> datetime:
    """Reference time for window-based metrics."""
    return datetime(2024, 6, 30, 12, 0)


@pytest.fixture
def store(engine: Engine) -> RecordStore:
    """Record store bound to the test database."""
    return RecordStore(engine)


@pytest.fixture
def analytics(engine: Engine) -> AnalyticsService:
    """Analytics service bound to the test database."""
    return AnalyticsService(engine)


# ============================================================================
# Record factories
# ============================================================================


@pytest.fixture
def make_patient() -> Callable[..., Patient]:
    """Build a patient with sensible defaults."""

    def _make(patient_id: int, **overrides) -> Patient:
        data = {
            "patient_id": patient_id,
            "first_name": f"First{patient_id}",
            "last_name": f"Last{patient_id}",
            "gender": "F",
            "dob": date(1980, 1, 1),
            "city": "Austin",
            "state": "TX",
            "insurance_provider": "Aetna",
        }
        data.update(overrides)
        return Patient(**data)

    return _make


@pytest.fixture
def make_doctor() -> Callable[..., Doctor]:
    """Build a doctor with sensible defaults."""

    def _make(doctor_id: int, **overrides) -> Doctor:
        data = {
            "doctor_id": doctor_id,
            "first_name": f"Doc{doctor_id}",
            "last_name": "Tor",
            "specialization": "Family Medicine",
        }
        data.update(overrides)
        return Doctor(**data)

    return _make


@pytest.fixture
def make_visit() -> Callable[..., Visit]:
    """Build a visit with sensible defaults."""

    def _make(
        visit_id: int,
        patient_id: int,
        doctor_id: int,
        visit_datetime: datetime,
        visit_type: str = "Outpatient",
        **overrides,
    ) -> Visit:
        data = {
            "visit_id": visit_id,
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "visit_datetime": visit_datetime,
            "visit_type": visit_type,
        }
        data.update(overrides)
        return Visit(**data)

    return _make


@pytest.fixture
def make_bill() -> Callable[..., Billing]:
    """Build a bill; amounts are given as strings to keep them exact."""

    def _make(
        bill_id: int,
        visit_id: int,
        total_cost: str,
        insurance_covered: str,
        patient_pay: str,
        payment_status: str = "Paid",
        paid_date: date | None = None,
        payment_method: str | None = None,
    ) -> Billing:
        return Billing(
            bill_id=bill_id,
            visit_id=visit_id,
            total_cost=Decimal(total_cost),
            insurance_covered=Decimal(insurance_covered),
            patient_pay=Decimal(patient_pay),
            payment_status=payment_status,
            paid_date=paid_date,
            payment_method=payment_method,
        )

    return _make


# ============================================================================
# Seeded dataset
# ============================================================================


@pytest.fixture
def seeded_store(store: RecordStore) -> RecordStore:
    """
    Load a small but complete dataset.

    Patients 1-4 visit; patient 5 never does. Patient 2 is a repeat ER visitor
    and, like patient 5, self-pay. Lab 2 is stored as Normal although its value
    is above range.
    """
    store.bulk_load(
        patients=[
            Patient(
                patient_id=1,
                first_name="Alice",
                last_name="Smith",
                gender="F",
                dob=date(1970, 4, 2),
                city="Austin",
                insurance_provider="Aetna",
            ),
            Patient(
                patient_id=2,
                first_name="Bob",
                last_name="Jones",
                gender="M",
                dob=date(1985, 9, 13),
                city="Austin",
                insurance_provider="None/SelfPay",
            ),
            Patient(
                patient_id=3,
                first_name="Carol",
                last_name="Adams",
                gender="F",
                dob=date(1962, 12, 30),
                city="Dallas",
                insurance_provider="Aetna",
            ),
            Patient(
                patient_id=4,
                first_name="Dan",
                last_name="Brown",
                gender="M",
                dob=date(1999, 7, 7),
                city="Houston",
                insurance_provider="Cigna",
            ),
            Patient(
                patient_id=5,
                first_name="Eve",
                last_name="Adams",
                gender="O",
                dob=date(2001, 3, 3),
                city="Dallas",
                insurance_provider="None/SelfPay",
            ),
        ],
        doctors=[
            Doctor(doctor_id=10, first_name="Gregory", last_name="House", specialization="Diagnostics"),
            Doctor(doctor_id=11, first_name="Lisa", last_name="Cuddy", specialization="Endocrinology"),
        ],
        visits=[
            Visit(
                visit_id=101,
                patient_id=1,
                doctor_id=10,
                visit_datetime=datetime(2024, 1, 5, 9, 0),
                visit_type="Outpatient",
                height_cm=Decimal("165.0"),
                weight_kg=Decimal("70.5"),
                systolic_bp=150,
                diastolic_bp=95,
                heart_rate=80,
            ),
            Visit(visit_id=102, patient_id=1, doctor_id=10, visit_datetime=datetime(2024, 3, 1, 10, 0), visit_type="Outpatient"),
            Visit(visit_id=103, patient_id=2, doctor_id=11, visit_datetime=datetime(2024, 1, 20, 14, 0), visit_type="ER"),
            Visit(visit_id=104, patient_id=2, doctor_id=11, visit_datetime=datetime(2024, 6, 10, 8, 0), visit_type="ER"),
            Visit(visit_id=105, patient_id=2, doctor_id=10, visit_datetime=datetime(2024, 6, 25, 22, 0), visit_type="ER"),
            Visit(visit_id=106, patient_id=3, doctor_id=11, visit_datetime=datetime(2024, 2, 14, 11, 0), visit_type="Inpatient"),
            Visit(visit_id=107, patient_id=4, doctor_id=10, visit_datetime=datetime(2024, 2, 20, 16, 0), visit_type="Telemedicine"),
            Visit(visit_id=108, patient_id=4, doctor_id=11, visit_datetime=datetime(2024, 12, 1, 9, 0), visit_type="Outpatient"),
        ],
        diagnoses=[
            Diagnosis(diag_id=1, visit_id=101, icd10_code="I10", diagnosis_desc="Essential hypertension", is_primary=True),
            Diagnosis(diag_id=2, visit_id=101, icd10_code="E78.5", diagnosis_desc="Hyperlipidemia"),
            Diagnosis(diag_id=3, visit_id=103, icd10_code="S93.4", diagnosis_desc="Ankle sprain", is_primary=True),
            Diagnosis(diag_id=4, visit_id=106, icd10_code="E11.9", diagnosis_desc="Type 2 diabetes", is_primary=True),
            Diagnosis(diag_id=5, visit_id=106, icd10_code="I10", diagnosis_desc="Essential hypertension"),
            Diagnosis(diag_id=6, visit_id=106, icd10_code="J45.909", diagnosis_desc="Asthma"),
            Diagnosis(diag_id=7, visit_id=107, icd10_code="J06.9", diagnosis_desc="Upper respiratory infection"),
        ],
        prescriptions=[
            Prescription(prescription_id=1, visit_id=101, drug_name="Atorvastatin", dosage_mg=20, frequency="OD", days_supply=30, refills=2),
            Prescription(prescription_id=2, visit_id=101, drug_name="Lisinopril", dosage_mg=10, frequency="OD", days_supply=30, refills=2),
            Prescription(prescription_id=3, visit_id=106, drug_name="Metformin", dosage_mg=500, frequency="BID", days_supply=90, refills=1),
            Prescription(prescription_id=4, visit_id=106, drug_name="Lisinopril", dosage_mg=10, frequency="OD", days_supply=90, refills=1),
            Prescription(prescription_id=5, visit_id=102, drug_name="Atorvastatin", dosage_mg=40, frequency="OD", days_supply=30, refills=0),
            Prescription(prescription_id=6, visit_id=108, drug_name="Lisinopril", dosage_mg=5, frequency="OD", days_supply=30, refills=0),
            Prescription(prescription_id=7, visit_id=103, drug_name="Ibuprofen", dosage_mg=400, frequency="PRN", days_supply=7, refills=0),
        ],
        lab_results=[
            LabResult(lab_id=1, visit_id=101, test_name="LDL", result_value=Decimal("190"), unit="mg/dL", ref_low=Decimal("0"), ref_high=Decimal("130"), flag="High"),
            LabResult(lab_id=2, visit_id=106, test_name="HbA1c", result_value=Decimal("8.1"), unit="%", ref_low=Decimal("4.0"), ref_high=Decimal("5.6"), flag="Normal"),
            LabResult(lab_id=3, visit_id=106, test_name="LDL", result_value=Decimal("100"), unit="mg/dL", ref_low=Decimal("0"), ref_high=Decimal("130"), flag="Normal"),
            LabResult(lab_id=4, visit_id=103, test_name="Hemoglobin", result_value=Decimal("11.0"), unit="g/dL", ref_low=Decimal("12.0"), ref_high=Decimal("16.0"), flag="Low"),
            LabResult(lab_id=5, visit_id=107, test_name="Hemoglobin", result_value=Decimal("13.5"), unit="g/dL", ref_low=Decimal("12.0"), ref_high=Decimal("16.0"), flag="Normal"),
            LabResult(lab_id=6, visit_id=102, test_name="CRP", result_value=Decimal("12.0"), unit="mg/L", flag="High"),
        ],
        billing=[
            Billing(bill_id=1, visit_id=101, total_cost=Decimal("100.00"), insurance_covered=Decimal("80.00"), patient_pay=Decimal("20.00"), payment_status="Paid", paid_date=date(2024, 1, 20), payment_method="Card"),
            Billing(bill_id=2, visit_id=102, total_cost=Decimal("200.00"), insurance_covered=Decimal("150.00"), patient_pay=Decimal("50.00"), payment_status="Paid", paid_date=date(2024, 4, 20), payment_method="Online"),
            Billing(bill_id=3, visit_id=103, total_cost=Decimal("500.00"), insurance_covered=Decimal("0.00"), patient_pay=Decimal("500.00"), payment_status="Pending"),
            Billing(bill_id=4, visit_id=104, total_cost=Decimal("300.00"), insurance_covered=Decimal("0.00"), patient_pay=Decimal("300.00"), payment_status="Partial", paid_date=date(2024, 7, 15), payment_method="Cash"),
            Billing(bill_id=5, visit_id=106, total_cost=Decimal("1000.00"), insurance_covered=Decimal("900.00"), patient_pay=Decimal("100.00"), payment_status="Paid", paid_date=date(2024, 3, 30), payment_method="InsuranceOnly"),
            Billing(bill_id=6, visit_id=107, total_cost=Decimal("0.00"), insurance_covered=Decimal("0.00"), patient_pay=Decimal("0.00"), payment_status="Denied"),
        ],
    )
    return store
