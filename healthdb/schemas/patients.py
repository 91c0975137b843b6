"""Patient schemas for record validation."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class Gender(str, Enum):
    """Gender enumeration."""

    MALE = "M"
    FEMALE = "F"
    OTHER = "O"


class Patient(BaseModel):
    """Patient record."""

    patient_id: int
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    gender: Gender
    dob: date
    phone: str | None = Field(None, max_length=20)
    email: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=80)
    state: str | None = Field(None, max_length=10)
    zip: str | None = Field(None, max_length=10)
    insurance_provider: str | None = Field(None, max_length=40)
    insurance_member_id: str | None = Field(None, max_length=20)

    model_config = {"from_attributes": True, "use_enum_values": True}

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return f"{self.first_name} {self.last_name}"
