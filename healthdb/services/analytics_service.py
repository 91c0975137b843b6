"""Analytics service computing the catalog of derived metrics.

Filter, join and group steps run as SQLAlchemy Core statements so they stay
portable across database dialects. Steps that need dialect-specific SQL
(date arithmetic, month bucketing, row numbering, lag comparison, pivoting)
run in Python over ordered result rows. Every metric issues a single
statement, so each result reflects one consistent view of the data.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from itertools import groupby, pairwise
from typing import Any

import structlog
from sqlalchemy import and_, case, func, select
from sqlalchemy.engine import Engine, Row
from sqlalchemy.sql.elements import ColumnElement

from healthdb.core.exceptions import InvalidParameterError
from healthdb.models import (
    billing,
    diagnoses,
    doctors,
    lab_results,
    patients,
    prescriptions,
    visits,
)
from healthdb.schemas.analytics import (
    BillingStatusSummary,
    CityCount,
    CoverageRatio,
    DoctorRevenue,
    DrugCount,
    ERVisitorRow,
    LabAbnormalityRate,
    LatePayment,
    MonthlyVisitBreakdown,
    PatientDirectoryRow,
    PatientRef,
    PatientVisitSpan,
    VisitDiagnosisCount,
    VisitSequenceRow,
    VisitTypeCount,
)
from healthdb.schemas.billing import PaymentStatus
from healthdb.schemas.visits import LabFlag, VisitType

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")

# Pivot columns of the monthly breakdown
VISIT_TYPE_COLUMNS = {
    VisitType.OUTPATIENT.value: "outpatient",
    VisitType.INPATIENT.value: "inpatient",
    VisitType.ER.value: "er",
    VisitType.TELEMEDICINE.value: "telemedicine",
}


def round_half_up(value: Decimal | float | int) -> Decimal:
    """Round to two decimal places, halves away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def days_to_pay(visit_datetime: datetime, paid_date: date) -> int:
    """Calendar days between the visit date and the payment date."""
    return (paid_date - visit_datetime.date()).days


def elapsed_days(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed between two timestamps, floored."""
    return (later - earlier).days


def effective_lab_flag() -> ColumnElement[Any]:
    """SQL expression recomputing a lab flag from its reference range.

    Mirrors ``healthdb.schemas.visits.derive_lab_flag``.
    """
    value = lab_results.c.result_value
    low = lab_results.c.ref_low
    high = lab_results.c.ref_high

    return case(
        (and_(value.is_not(None), low.is_not(None), value < low), LabFlag.LOW.value),
        (and_(value.is_not(None), high.is_not(None), value > high), LabFlag.HIGH.value),
        (
            and_(value.is_not(None), low.is_not(None), high.is_not(None)),
            LabFlag.NORMAL.value,
        ),
        else_=lab_results.c.flag,
    )


def _require_non_negative(name: str, value: int) -> None:
    if value is None or value < 0:
        raise InvalidParameterError(f"{name} must be a non-negative integer, got {value!r}")


def _require_positive(name: str, value: int) -> None:
    if value is None or value < 1:
        raise InvalidParameterError(f"{name} must be at least 1, got {value!r}")


class AnalyticsService:
    """Service for the read-only analytics catalog."""

    def __init__(self, engine: Engine):
        """Initialize service with a database engine."""
        self.engine = engine

    # ========================================================================
    # Patients & utilization
    # ========================================================================

    def patient_directory(self) -> list[PatientDirectoryRow]:
        """List patients by last name, then first name."""
        stmt = select(patients.c.first_name, patients.c.last_name, patients.c.city).order_by(
            patients.c.last_name, patients.c.first_name, patients.c.patient_id
        )
        rows = [PatientDirectoryRow.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("patient_directory", rows)

    def insurance_providers(self) -> list[str]:
        """
        Distinct insurance providers in alphabetical order.

        Patients without a provider are left out rather than listed as None.
        """
        stmt = (
            select(patients.c.insurance_provider)
            .where(patients.c.insurance_provider.is_not(None))
            .distinct()
            .order_by(patients.c.insurance_provider)
        )
        providers = [r.insurance_provider for r in self._fetch(stmt)]
        return self._computed("insurance_providers", providers)

    def top_cities(self, limit: int = 5) -> list[CityCount]:
        """
        Cities with the most patients.

        Args:
            limit: Maximum number of cities returned

        Returns:
            Cities by patient count descending, ties by city name. Patients
            without a city are not counted as a group.
        """
        _require_non_negative("limit", limit)

        patient_count = func.count().label("patient_count")
        stmt = (
            select(patients.c.city, patient_count)
            .where(patients.c.city.is_not(None))
            .group_by(patients.c.city)
            .order_by(patient_count.desc(), patients.c.city)
            .limit(limit)
        )
        rows = [CityCount.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("top_cities", rows)

    def visit_counts_by_type(self) -> list[VisitTypeCount]:
        """Number of visits per visit type."""
        visit_count = func.count().label("visit_count")
        stmt = (
            select(visits.c.visit_type, visit_count)
            .group_by(visits.c.visit_type)
            .order_by(visit_count.desc(), visits.c.visit_type)
        )
        rows = [VisitTypeCount.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("visit_counts_by_type", rows)

    def visit_span_per_patient(self) -> list[PatientVisitSpan]:
        """First visit, last visit and visit count of every patient who visited."""
        stmt = (
            select(
                patients.c.patient_id,
                func.min(visits.c.visit_datetime).label("first_visit"),
                func.max(visits.c.visit_datetime).label("last_visit"),
                func.count(visits.c.visit_id).label("total_visits"),
            )
            .select_from(patients.join(visits, visits.c.patient_id == patients.c.patient_id))
            .group_by(patients.c.patient_id)
            .order_by(patients.c.patient_id)
        )
        rows = [PatientVisitSpan.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("visit_span_per_patient", rows)

    def visits_with_multiple_diagnoses(self, min_diagnoses: int = 2) -> list[VisitDiagnosisCount]:
        """Visits carrying at least ``min_diagnoses`` diagnoses."""
        _require_positive("min_diagnoses", min_diagnoses)

        num_diagnoses = func.count().label("num_diagnoses")
        stmt = (
            select(diagnoses.c.visit_id, num_diagnoses)
            .group_by(diagnoses.c.visit_id)
            .having(func.count() >= min_diagnoses)
            .order_by(num_diagnoses.desc(), diagnoses.c.visit_id)
        )
        rows = [VisitDiagnosisCount.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("visits_with_multiple_diagnoses", rows)

    def patients_without_visits(self) -> list[PatientRef]:
        """Patients who never visited."""
        stmt = (
            select(patients.c.patient_id, patients.c.first_name, patients.c.last_name)
            .select_from(patients.outerjoin(visits, visits.c.patient_id == patients.c.patient_id))
            .where(visits.c.visit_id.is_(None))
            .order_by(patients.c.patient_id)
        )
        rows = [PatientRef.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("patients_without_visits", rows)

    def repeat_er_visitors(
        self,
        window_days: int = 45,
        min_visits: int = 2,
        as_of: datetime | None = None,
    ) -> list[ERVisitorRow]:
        """
        Patients with several ER visits in a trailing window.

        Args:
            window_days: Window length; it opens at midnight ``window_days`` before ``as_of``
            min_visits: Minimum ER visits inside the window
            as_of: Reference time, defaults to now

        Returns:
            Patients by ER visit count descending
        """
        _require_non_negative("window_days", window_days)
        _require_positive("min_visits", min_visits)

        as_of = as_of or datetime.now()
        window_start = datetime.combine(as_of.date() - timedelta(days=window_days), time.min)

        er_visits = func.count(visits.c.visit_id).label("er_visits")
        stmt = (
            select(
                patients.c.patient_id,
                patients.c.first_name,
                patients.c.last_name,
                er_visits,
            )
            .select_from(patients.join(visits, visits.c.patient_id == patients.c.patient_id))
            .where(
                visits.c.visit_type == VisitType.ER.value,
                visits.c.visit_datetime >= window_start,
            )
            .group_by(patients.c.patient_id, patients.c.first_name, patients.c.last_name)
            .having(func.count(visits.c.visit_id) >= min_visits)
            .order_by(er_visits.desc(), patients.c.patient_id)
        )

        rows = [
            ERVisitorRow(
                patient_id=r.patient_id,
                patient_name=f"{r.first_name} {r.last_name}",
                er_visits=r.er_visits,
            )
            for r in self._fetch(stmt)
        ]
        return self._computed("repeat_er_visitors", rows)

    def monthly_visit_breakdown(self) -> list[MonthlyVisitBreakdown]:
        """Visits per calendar month, pivoted into one column per visit type."""
        stmt = select(visits.c.visit_datetime, visits.c.visit_type).order_by(
            visits.c.visit_datetime
        )

        # Rows arrive chronologically, so insertion order is month order
        months: dict[str, Counter[str]] = {}
        for r in self._fetch(stmt):
            month = r.visit_datetime.strftime("%Y-%m")
            months.setdefault(month, Counter())[VISIT_TYPE_COLUMNS[r.visit_type]] += 1

        rows = [MonthlyVisitBreakdown(month=month, **counts) for month, counts in months.items()]
        return self._computed("monthly_visit_breakdown", rows)

    def visit_sequence(self) -> list[VisitSequenceRow]:
        """Number each patient's visits chronologically, starting at 1."""
        stmt = select(visits.c.visit_id, visits.c.patient_id, visits.c.visit_datetime).order_by(
            visits.c.patient_id, visits.c.visit_datetime, visits.c.visit_id
        )

        rows = []
        for _, patient_visits in groupby(self._fetch(stmt), key=lambda r: r.patient_id):
            for seq, r in enumerate(patient_visits, start=1):
                rows.append(
                    VisitSequenceRow(
                        visit_id=r.visit_id,
                        patient_id=r.patient_id,
                        visit_datetime=r.visit_datetime,
                        visit_seq=seq,
                    )
                )
        return self._computed("visit_sequence", rows)

    def returning_patients(self, window_days: int = 180) -> int:
        """Count patients with two consecutive visits at most ``window_days`` apart."""
        _require_non_negative("window_days", window_days)

        stmt = select(visits.c.patient_id, visits.c.visit_datetime).order_by(
            visits.c.patient_id, visits.c.visit_datetime, visits.c.visit_id
        )

        returning = set()
        for patient_id, patient_visits in groupby(self._fetch(stmt), key=lambda r: r.patient_id):
            timestamps = [r.visit_datetime for r in patient_visits]
            if any(elapsed_days(prev, cur) <= window_days for prev, cur in pairwise(timestamps)):
                returning.add(patient_id)

        return self._computed("returning_patients", len(returning))

    # ========================================================================
    # Clinical
    # ========================================================================

    def top_drugs(self, limit: int = 10) -> list[DrugCount]:
        """Most frequently prescribed drugs."""
        _require_non_negative("limit", limit)

        times_prescribed = func.count().label("times_prescribed")
        stmt = (
            select(prescriptions.c.drug_name, times_prescribed)
            .group_by(prescriptions.c.drug_name)
            .order_by(times_prescribed.desc(), prescriptions.c.drug_name)
            .limit(limit)
        )
        rows = [DrugCount.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("top_drugs", rows)

    def lab_abnormality_rates(self) -> list[LabAbnormalityRate]:
        """Share of High or Low results per test, highest share first."""
        flag = effective_lab_flag()
        abnormal = func.sum(case((flag.in_([LabFlag.HIGH.value, LabFlag.LOW.value]), 1), else_=0))

        stmt = select(
            lab_results.c.test_name,
            func.count().label("total_tests"),
            abnormal.label("abnormal_count"),
        ).group_by(lab_results.c.test_name)

        rows = []
        for r in self._fetch(stmt):
            abnormal_count = int(r.abnormal_count or 0)
            rows.append(
                LabAbnormalityRate(
                    test_name=r.test_name,
                    total_tests=r.total_tests,
                    abnormal_count=abnormal_count,
                    abnormal_pct=round_half_up(
                        Decimal(abnormal_count) / Decimal(r.total_tests) * 100
                    ),
                )
            )

        rows.sort(key=lambda row: (-row.abnormal_pct, row.test_name))
        return self._computed("lab_abnormality_rates", rows)

    def high_risk_patients(self, chronic_codes: Iterable[str]) -> list[PatientRef]:
        """
        Patients with a High lab result and a chronic diagnosis on the same visit.

        Args:
            chronic_codes: ICD-10 codes considered chronic

        Returns:
            Distinct patients ordered by ID
        """
        if isinstance(chronic_codes, str):
            chronic_codes = [chronic_codes]
        codes = sorted({code for code in chronic_codes if code})
        if not codes:
            raise InvalidParameterError("chronic_codes must contain at least one ICD-10 code")

        stmt = (
            select(patients.c.patient_id, patients.c.first_name, patients.c.last_name)
            .distinct()
            .select_from(
                patients.join(visits, visits.c.patient_id == patients.c.patient_id)
                .join(lab_results, lab_results.c.visit_id == visits.c.visit_id)
                .join(diagnoses, diagnoses.c.visit_id == visits.c.visit_id)
            )
            .where(
                effective_lab_flag() == LabFlag.HIGH.value,
                diagnoses.c.icd10_code.in_(codes),
            )
            .order_by(patients.c.patient_id)
        )
        rows = [PatientRef.model_validate(dict(r._mapping)) for r in self._fetch(stmt)]
        return self._computed("high_risk_patients", rows)

    # ========================================================================
    # Financial
    # ========================================================================

    def billing_by_status(self, payment_status: str | None = None) -> list[BillingStatusSummary]:
        """
        Billed amounts versus collections per payment status.

        Args:
            payment_status: Restrict to one status

        Returns:
            One row per status, rounded to cents
        """
        conditions = []
        if payment_status is not None:
            try:
                status = PaymentStatus(payment_status)
            except ValueError:
                raise InvalidParameterError(
                    f"Unknown payment status {payment_status!r}"
                ) from None
            conditions.append(billing.c.payment_status == status.value)

        stmt = (
            select(
                billing.c.payment_status,
                func.sum(billing.c.total_cost).label("total_billed"),
                func.sum(billing.c.patient_pay).label("total_patient_pay"),
                func.sum(billing.c.insurance_covered).label("total_insurance_covered"),
            )
            .where(*conditions)
            .group_by(billing.c.payment_status)
            .order_by(billing.c.payment_status)
        )

        rows = [
            BillingStatusSummary(
                payment_status=r.payment_status,
                total_billed=round_half_up(r.total_billed),
                total_patient_pay=round_half_up(r.total_patient_pay),
                total_insurance_covered=round_half_up(r.total_insurance_covered),
            )
            for r in self._fetch(stmt)
        ]
        return self._computed("billing_by_status", rows)

    def self_pay_count(self, sentinel: str) -> int:
        """Count patients whose insurance provider is the self-pay sentinel."""
        if not sentinel:
            raise InvalidParameterError("sentinel must be a non-empty string")

        stmt = (
            select(func.count())
            .select_from(patients)
            .where(patients.c.insurance_provider == sentinel)
        )
        with self.engine.connect() as conn:
            count = conn.execute(stmt).scalar_one()
        return self._computed("self_pay_count", count)

    def top_doctors_by_revenue(self, limit: int = 10) -> list[DoctorRevenue]:
        """Doctors with the highest total billed amount."""
        _require_non_negative("limit", limit)

        total_revenue = func.sum(billing.c.total_cost).label("total_revenue")
        stmt = (
            select(doctors.c.doctor_id, doctors.c.first_name, doctors.c.last_name, total_revenue)
            .select_from(
                doctors.join(visits, visits.c.doctor_id == doctors.c.doctor_id).join(
                    billing, billing.c.visit_id == visits.c.visit_id
                )
            )
            .group_by(doctors.c.doctor_id, doctors.c.first_name, doctors.c.last_name)
            .order_by(total_revenue.desc(), doctors.c.doctor_id)
            .limit(limit)
        )

        rows = [
            DoctorRevenue(
                doctor_id=r.doctor_id,
                doctor_name=f"{r.first_name} {r.last_name}",
                total_revenue=round_half_up(r.total_revenue),
            )
            for r in self._fetch(stmt)
        ]
        return self._computed("top_doctors_by_revenue", rows)

    def late_payers(self, threshold_days: int = 45) -> list[LatePayment]:
        """Bills paid more than ``threshold_days`` after the visit."""
        _require_non_negative("threshold_days", threshold_days)

        rows = []
        for r in self._fetch(self._paid_bills()):
            delayed = days_to_pay(r.visit_datetime, r.paid_date)
            if delayed > threshold_days:
                rows.append(
                    LatePayment(
                        bill_id=r.bill_id,
                        visit_id=r.visit_id,
                        visit_datetime=r.visit_datetime,
                        paid_date=r.paid_date,
                        delayed_days=delayed,
                    )
                )
        return self._computed("late_payers", rows)

    def average_days_to_pay(self) -> Decimal | None:
        """Mean days between visit and payment over paid bills, None when nothing is paid."""
        delays = [days_to_pay(r.visit_datetime, r.paid_date) for r in self._fetch(self._paid_bills())]
        if not delays:
            return self._computed("average_days_to_pay", None)

        average = round_half_up(Decimal(sum(delays)) / Decimal(len(delays)))
        return self._computed("average_days_to_pay", average)

    def insurance_coverage_by_provider(self) -> list[CoverageRatio]:
        """
        Average insurer and patient share of the bill per insurance provider.

        Bills with a zero total are left out of the averages.
        """
        stmt = (
            select(
                patients.c.insurance_provider,
                billing.c.total_cost,
                billing.c.insurance_covered,
                billing.c.patient_pay,
            )
            .select_from(
                billing.join(visits, visits.c.visit_id == billing.c.visit_id).join(
                    patients, patients.c.patient_id == visits.c.patient_id
                )
            )
            .where(billing.c.total_cost != 0)
        )

        coverage: dict[str | None, list[Decimal]] = defaultdict(list)
        patient_share: dict[str | None, list[Decimal]] = defaultdict(list)
        for r in self._fetch(stmt):
            if not r.total_cost:
                continue
            coverage[r.insurance_provider].append(r.insurance_covered / r.total_cost)
            patient_share[r.insurance_provider].append(r.patient_pay / r.total_cost)

        rows = [
            CoverageRatio(
                insurance_provider=provider,
                avg_coverage_pct=round_half_up(_mean(ratios) * 100),
                avg_patient_share_pct=round_half_up(_mean(patient_share[provider]) * 100),
            )
            for provider, ratios in coverage.items()
        ]
        rows.sort(key=lambda row: (-row.avg_coverage_pct, row.insurance_provider or ""))
        return self._computed("insurance_coverage_by_provider", rows)

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _paid_bills() -> Any:
        return (
            select(
                billing.c.bill_id,
                billing.c.visit_id,
                visits.c.visit_datetime,
                billing.c.paid_date,
            )
            .select_from(billing.join(visits, visits.c.visit_id == billing.c.visit_id))
            .where(billing.c.paid_date.is_not(None))
            .order_by(billing.c.bill_id)
        )

    def _fetch(self, stmt: Any) -> Sequence[Row]:
        with self.engine.connect() as conn:
            return conn.execute(stmt).all()

    @staticmethod
    def _computed(metric: str, result: Any) -> Any:
        size = len(result) if isinstance(result, list) else 1
        logger.debug("metric_computed", metric=metric, rows=size)
        return result


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, Decimal(0)) / len(values)
