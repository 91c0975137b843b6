"""Doctor schemas for record validation."""

from pydantic import BaseModel, Field


class Doctor(BaseModel):
    """Doctor record."""

    doctor_id: int
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    specialization: str | None = Field(None, max_length=60)
    phone: str | None = Field(None, max_length=20)
    email: str | None = Field(None, max_length=100)

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return f"{self.first_name} {self.last_name}"
