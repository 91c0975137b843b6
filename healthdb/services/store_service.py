"""Record store service: inserts, lookups and the permitted mutations."""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy import Table, delete, exc, func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from healthdb.core.exceptions import IntegrityError, InvalidParameterError, NotFoundError
from healthdb.models import (
    billing,
    diagnoses,
    doctors,
    lab_results,
    patients,
    prescriptions,
    visits,
)
from healthdb.schemas.billing import Billing, PaymentMethod, PaymentStatus, PaymentUpdate
from healthdb.schemas.doctors import Doctor
from healthdb.schemas.patients import Patient
from healthdb.schemas.visits import Diagnosis, LabResult, Prescription, Visit

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class TableSpec:
    """How a record type maps onto its table."""

    table: Table
    key: str
    # (foreign key column, parent table); the parent's key has the same name
    parents: tuple[tuple[str, Table], ...] = ()
    unique: tuple[str, ...] = field(default_factory=tuple)


TABLE_SPECS: dict[type[BaseModel], TableSpec] = {
    Patient: TableSpec(patients, "patient_id"),
    Doctor: TableSpec(doctors, "doctor_id"),
    Visit: TableSpec(
        visits,
        "visit_id",
        parents=(("patient_id", patients), ("doctor_id", doctors)),
    ),
    Diagnosis: TableSpec(diagnoses, "diag_id", parents=(("visit_id", visits),)),
    Prescription: TableSpec(prescriptions, "prescription_id", parents=(("visit_id", visits),)),
    LabResult: TableSpec(lab_results, "lab_id", parents=(("visit_id", visits),)),
    Billing: TableSpec(
        billing,
        "bill_id",
        parents=(("visit_id", visits),),
        unique=("visit_id",),
    ),
}

# Deleting a visit removes these rows with it
CASCADE_ON_VISIT_DELETE: tuple[Table, ...] = (diagnoses,)

# Deleting a visit is refused while any of these still reference it
RESTRICT_ON_VISIT_DELETE: tuple[Table, ...] = (prescriptions, lab_results, billing)


class RecordStore:
    """Service for persisting and reading healthcare records."""

    def __init__(self, engine: Engine):
        """Initialize service with a database engine."""
        self.engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, record: RecordT) -> RecordT:
        """
        Insert a single record.

        Args:
            record: Validated record of one of the seven entity types

        Returns:
            The inserted record

        Raises:
            IntegrityError: If the key exists or a referenced record is missing
        """
        with self._write() as conn:
            self._insert(conn, record)
        return record

    def bulk_load(
        self,
        patients: Iterable[Patient] = (),
        doctors: Iterable[Doctor] = (),
        visits: Iterable[Visit] = (),
        diagnoses: Iterable[Diagnosis] = (),
        prescriptions: Iterable[Prescription] = (),
        lab_results: Iterable[LabResult] = (),
        billing: Iterable[Billing] = (),
    ) -> dict[str, int]:
        """
        Load pre-cleaned records in dependency order inside one transaction.

        Either every record is stored or none is.

        Returns:
            Number of records loaded per table
        """
        batches: list[tuple[str, type[BaseModel], Iterable[BaseModel]]] = [
            ("patients", Patient, patients),
            ("doctors", Doctor, doctors),
            ("visits", Visit, visits),
            ("diagnoses", Diagnosis, diagnoses),
            ("prescriptions", Prescription, prescriptions),
            ("lab_results", LabResult, lab_results),
            ("billing", Billing, billing),
        ]

        counts: dict[str, int] = {}
        with self._write() as conn:
            for name, record_type, records in batches:
                counts[name] = 0
                for record in records:
                    if not isinstance(record, record_type):
                        raise InvalidParameterError(
                            f"Expected {record_type.__name__} in {name}, "
                            f"got {type(record).__name__}"
                        )
                    self._insert(conn, record)
                    counts[name] += 1

        logger.info("bulk_load_completed", **counts)
        return counts

    def delete_visit(self, visit_id: int) -> int:
        """
        Delete a visit together with its diagnoses.

        Args:
            visit_id: Visit ID

        Returns:
            Number of diagnoses removed with the visit

        Raises:
            NotFoundError: If the visit does not exist
            IntegrityError: If prescriptions, lab results or a bill still reference it
        """
        with self._write() as conn:
            if not self._exists(conn, visits, "visit_id", visit_id):
                raise NotFoundError(f"Visit {visit_id} not found")

            for child in RESTRICT_ON_VISIT_DELETE:
                referencing = conn.execute(
                    select(func.count()).select_from(child).where(child.c.visit_id == visit_id)
                ).scalar_one()
                if referencing:
                    raise IntegrityError(
                        f"Visit {visit_id} is still referenced by {referencing} {child.name} row(s)"
                    )

            removed = 0
            for child in CASCADE_ON_VISIT_DELETE:
                result = conn.execute(delete(child).where(child.c.visit_id == visit_id))
                removed += result.rowcount

            conn.execute(delete(visits).where(visits.c.visit_id == visit_id))

        logger.info("visit_deleted", visit_id=visit_id, diagnoses_removed=removed)
        return removed

    def record_payment(
        self,
        bill_id: int,
        payment_status: PaymentStatus | str,
        paid_date: date | None = None,
        payment_method: PaymentMethod | str | None = None,
    ) -> Billing:
        """
        Record a payment state transition on a bill.

        Raises:
            NotFoundError: If the bill does not exist
            InvalidParameterError: On an unknown status or method, or paid_date before the visit
        """
        try:
            data = PaymentUpdate(
                payment_status=payment_status,
                paid_date=paid_date,
                payment_method=payment_method,
            )
        except ValidationError as e:
            raise InvalidParameterError(f"Invalid payment for bill {bill_id}: {e}") from e

        with self._write() as conn:
            row = conn.execute(
                select(billing.c.bill_id, visits.c.visit_datetime)
                .join(visits, visits.c.visit_id == billing.c.visit_id)
                .where(billing.c.bill_id == bill_id)
            ).first()

            if not row:
                raise NotFoundError(f"Bill {bill_id} not found")

            if data.paid_date is not None and data.paid_date < row.visit_datetime.date():
                raise InvalidParameterError(
                    f"paid_date {data.paid_date} precedes visit on {row.visit_datetime.date()}"
                )

            conn.execute(
                update(billing).where(billing.c.bill_id == bill_id).values(**data.model_dump())
            )

        logger.info("payment_recorded", bill_id=bill_id, payment_status=data.payment_status)
        return self.get(Billing, bill_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_type: type[RecordT], record_id: int) -> RecordT:
        """
        Get a record by primary key.

        Raises:
            NotFoundError: If no record has that key
        """
        spec = self._spec(record_type)

        with self.engine.connect() as conn:
            row = (
                conn.execute(select(spec.table).where(spec.table.c[spec.key] == record_id))
                .mappings()
                .first()
            )

        if not row:
            raise NotFoundError(f"{record_type.__name__} {record_id} not found")

        return record_type.model_validate(dict(row))

    def query(self, record_type: type[RecordT], *criteria: Any, **equals: Any) -> Iterator[RecordT]:
        """
        Lazily iterate records matching every criterion, ordered by key.

        Args:
            record_type: Record class to read
            criteria: SQLAlchemy boolean expressions over the record's table
            equals: Column equality filters

        Returns:
            Iterator evaluated against the state at the time iteration starts
        """
        spec = self._spec(record_type)
        conditions = list(criteria)

        for column, value in equals.items():
            if column not in spec.table.c:
                raise InvalidParameterError(f"{spec.table.name} has no column {column!r}")
            conditions.append(spec.table.c[column] == value)

        stmt = select(spec.table).where(*conditions).order_by(spec.table.c[spec.key])
        return self._stream(record_type, stmt)

    def count(self, record_type: type[BaseModel]) -> int:
        """Count stored records of a type."""
        spec = self._spec(record_type)
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(spec.table)).scalar_one()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _write(self) -> Iterator[Connection]:
        """Open a transaction and translate database constraint failures."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except exc.IntegrityError as e:
            logger.warning("write_rejected", error=str(e.orig))
            raise IntegrityError(str(e.orig)) from e

    def _stream(self, record_type: type[RecordT], stmt: Any) -> Iterator[RecordT]:
        # Rows are buffered so the connection is released before the caller resumes
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        for row in rows:
            yield record_type.model_validate(dict(row))

    def _insert(self, conn: Connection, record: BaseModel) -> None:
        spec = self._spec(type(record))
        table = spec.table
        record_name = type(record).__name__
        key_value = getattr(record, spec.key)

        if self._exists(conn, table, spec.key, key_value):
            raise self._reject(record_name, f"{record_name} {key_value} already exists")

        for column, parent in spec.parents:
            parent_id = getattr(record, column)
            if not self._exists(conn, parent, column, parent_id):
                raise self._reject(
                    record_name,
                    f"{record_name} {key_value} references missing {parent.name} {parent_id}",
                )

        for column in spec.unique:
            value = getattr(record, column)
            if self._exists(conn, table, column, value):
                raise self._reject(
                    record_name,
                    f"{table.name}.{column} = {value} already exists",
                )

        conn.execute(insert(table).values(**record.model_dump()))
        logger.debug("record_inserted", record_type=record_name, key=key_value)

    @staticmethod
    def _exists(conn: Connection, table: Table, column: str, value: Any) -> bool:
        stmt = select(table.c[column]).where(table.c[column] == value).limit(1)
        return conn.execute(stmt).first() is not None

    @staticmethod
    def _reject(record_name: str, message: str) -> IntegrityError:
        logger.warning("insert_rejected", record_type=record_name, reason=message)
        return IntegrityError(message)

    @staticmethod
    def _spec(record_type: type[BaseModel]) -> TableSpec:
        try:
            return TABLE_SPECS[record_type]
        except KeyError:
            raise InvalidParameterError(
                f"Unsupported record type {getattr(record_type, '__name__', record_type)!r}"
            ) from None
