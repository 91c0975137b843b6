"""Database models."""

from healthdb.models.base import metadata
from healthdb.models.billing import billing
from healthdb.models.diagnoses import diagnoses
from healthdb.models.doctors import doctors
from healthdb.models.lab_results import lab_results
from healthdb.models.patients import patients
from healthdb.models.prescriptions import prescriptions
from healthdb.models.visits import visits

__all__ = [
    "billing",
    "diagnoses",
    "doctors",
    "lab_results",
    "metadata",
    "patients",
    "prescriptions",
    "visits",
]
