"""Pydantic building blocks shared by several routers"""

from pydantic import BaseModel, field_validator

from .shared.validators import validate_days_of_week, validate_iso_date, validate_time_of_day


class ScheduleRuleFields(BaseModel):
    """Parsing for start_time/end_time/days_of_week/specific_date on schedule rules"""

    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def validate_time(cls, v):
        return validate_time_of_day(v) if v is not None else v

    @field_validator("specific_date", mode="before", check_fields=False)
    @classmethod
    def validate_date(cls, v):
        return validate_iso_date(v) if v is not None else v

    @field_validator("days_of_week", check_fields=False)
    @classmethod
    def validate_days(cls, v):
        return validate_days_of_week(v)
