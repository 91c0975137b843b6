#!/usr/bin/env python3
"""
Print analytics metrics as JSON.

Usage:
    python scripts/run_report.py
    python scripts/run_report.py top_cities late_payers --limit 3

Environment Variables:
    DATABASE_URL: Database to read (default: sqlite:///./healthdb.sqlite3)
    SELF_PAY_SENTINEL, CHRONIC_ICD10_CODES, LATE_PAYMENT_DAYS,
    ER_WINDOW_DAYS, RETENTION_WINDOW_DAYS: Metric parameters
"""

import argparse
import json
import sys
from collections.abc import Callable
from typing import Any

import dotenv
import structlog
from pydantic import BaseModel

from healthdb.config import Settings, get_settings
from healthdb.core.exceptions import AppException
from healthdb.core.logging import configure_logging
from healthdb.database import create_db_engine
from healthdb.services import AnalyticsService

dotenv.load_dotenv()

Metric = Callable[[AnalyticsService, Settings, argparse.Namespace], Any]


def _limit(args: argparse.Namespace, default: int) -> int:
    return default if args.limit is None else args.limit


METRICS: dict[str, Metric] = {
    "patient_directory": lambda svc, cfg, args: svc.patient_directory(),
    "insurance_providers": lambda svc, cfg, args: svc.insurance_providers(),
    "top_cities": lambda svc, cfg, args: svc.top_cities(limit=_limit(args, 5)),
    "visit_counts_by_type": lambda svc, cfg, args: svc.visit_counts_by_type(),
    "billing_by_status": lambda svc, cfg, args: svc.billing_by_status(),
    "top_drugs": lambda svc, cfg, args: svc.top_drugs(limit=_limit(args, 10)),
    "self_pay_count": lambda svc, cfg, args: svc.self_pay_count(cfg.self_pay_sentinel),
    "top_doctors_by_revenue": lambda svc, cfg, args: svc.top_doctors_by_revenue(
        limit=_limit(args, 10)
    ),
    "lab_abnormality_rates": lambda svc, cfg, args: svc.lab_abnormality_rates(),
    "visit_span_per_patient": lambda svc, cfg, args: svc.visit_span_per_patient(),
    "visits_with_multiple_diagnoses": lambda svc, cfg, args: svc.visits_with_multiple_diagnoses(),
    "patients_without_visits": lambda svc, cfg, args: svc.patients_without_visits(),
    "late_payers": lambda svc, cfg, args: svc.late_payers(cfg.late_payment_days),
    "average_days_to_pay": lambda svc, cfg, args: svc.average_days_to_pay(),
    "high_risk_patients": lambda svc, cfg, args: svc.high_risk_patients(cfg.chronic_icd10_codes),
    "repeat_er_visitors": lambda svc, cfg, args: svc.repeat_er_visitors(cfg.er_window_days),
    "insurance_coverage_by_provider": lambda svc, cfg, args: svc.insurance_coverage_by_provider(),
    "monthly_visit_breakdown": lambda svc, cfg, args: svc.monthly_visit_breakdown(),
    "visit_sequence": lambda svc, cfg, args: svc.visit_sequence(),
    "returning_patients": lambda svc, cfg, args: svc.returning_patients(
        cfg.retention_window_days
    ),
}


def to_jsonable(result: Any) -> Any:
    """Convert metric results to JSON-serializable values."""
    if isinstance(result, list):
        return [to_jsonable(item) for item in result]
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if result is None or isinstance(result, int | str):
        return result
    return float(result)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Print healthdb analytics metrics as JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Available metrics:\n  " + "\n  ".join(METRICS),
    )
    parser.add_argument(
        "metrics",
        nargs="*",
        metavar="METRIC",
        help="Metrics to compute (default: all)",
    )
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument("--limit", type=int, help="Limit for top-N metrics")
    args = parser.parse_args()

    unknown = [name for name in args.metrics if name not in METRICS]
    if unknown:
        parser.error(f"unknown metric(s): {', '.join(unknown)}")

    settings = get_settings()
    configure_logging(settings)
    logger = structlog.get_logger()

    service = AnalyticsService(create_db_engine(args.database_url))
    report: dict[str, Any] = {}

    try:
        for name in args.metrics or METRICS:
            report[name] = to_jsonable(METRICS[name](service, settings, args))
    except AppException as e:
        logger.error("report_failed", error=e.message, code=e.code)
        return 1

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
