"""Availability domain schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.timeutils import as_utc


class AvailableSlot(BaseModel):
    rule_id: int
    date: date
    start_time: datetime
    end_time: datetime
    total_capacity: Optional[int] = None
    remaining_capacity: Optional[int] = None
    uses_staff_capacity: bool
    field_ids: list[int]
    price_per_pet: Optional[float] = None
    zero_capacity_reason: Optional[str] = None
    other_staff_potentially_available: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_utc(cls, v):
        return as_utc(v)
