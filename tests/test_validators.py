from datetime import date, datetime, time, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from daycare.shared import timeutils
from daycare.shared.db_errors import (
    integrity_error_code,
    is_foreign_key_violation,
    raise_for_integrity_error,
)
from daycare.shared.validators import (
    strip_required,
    validate_days_of_week,
    validate_email,
    validate_iso_date,
    validate_recurrence,
    validate_time_of_day,
)


class FakePgError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def integrity_error(orig):
    return IntegrityError("INSERT ...", {}, orig)


def test_validate_email():
    assert validate_email(" Casey@Example.COM ") == "casey@example.com"
    assert validate_email(None) is None
    with pytest.raises(ValueError):
        validate_email("not-an-email")


def test_validate_time_of_day():
    assert validate_time_of_day("08:30") == time(8, 30)
    assert validate_time_of_day("23:59:59") == time(23, 59, 59)
    for bad in ("24:00", "8.30", 830):
        with pytest.raises(ValueError):
            validate_time_of_day(bad)


def test_validate_iso_date():
    assert validate_iso_date("2030-01-07") == date(2030, 1, 7)
    with pytest.raises(ValueError):
        validate_iso_date("2030-02-30")


def test_validate_days_of_week():
    assert validate_days_of_week([5, 1, 5]) == [1, 5]
    assert validate_days_of_week([]) is None
    with pytest.raises(ValueError):
        validate_days_of_week([True])


def test_validate_recurrence():
    validate_recurrence([1], None)
    validate_recurrence(None, date(2030, 1, 7))
    with pytest.raises(ValueError):
        validate_recurrence(None, None)


def test_strip_required():
    assert strip_required("  Rex ", "name") == "Rex"
    with pytest.raises(ValueError, match="Missing required field: name"):
        strip_required("   ", "name")


def test_integrity_error_codes():
    assert is_foreign_key_violation(integrity_error(FakePgError("23503")))
    assert integrity_error_code(integrity_error(Exception("UNIQUE constraint failed: services.name"))) == "23505"
    assert integrity_error_code(integrity_error(Exception("something odd"))) is None


def test_raise_for_integrity_error():
    with pytest.raises(HTTPException) as fk:
        raise_for_integrity_error(integrity_error(FakePgError("23503")), foreign_key="Bad site")
    assert (fk.value.status_code, fk.value.detail) == (400, "Bad site")

    with pytest.raises(HTTPException) as unique:
        raise_for_integrity_error(integrity_error(FakePgError("23505")), unique="Taken")
    assert (unique.value.status_code, unique.value.detail) == (409, "Taken")

    with pytest.raises(HTTPException) as unknown:
        raise_for_integrity_error(integrity_error(FakePgError("99999")))
    assert unknown.value.status_code == 500


def test_naive_client_input_is_business_time():
    summer = timeutils.from_client_input(datetime(2030, 7, 1, 9, 0))
    assert summer == datetime(2030, 7, 1, 8, 0, tzinfo=timezone.utc)

    winter = timeutils.from_client_input(datetime(2030, 1, 7, 9, 0))
    assert winter == datetime(2030, 1, 7, 9, 0, tzinfo=timezone.utc)

    aware = timeutils.from_client_input(datetime(2030, 7, 1, 9, 0, tzinfo=timezone.utc))
    assert aware.hour == 9


def test_local_to_utc_and_back():
    start = timeutils.local_to_utc(date(2030, 7, 1), time(8, 0))
    assert start == datetime(2030, 7, 1, 7, 0, tzinfo=timezone.utc)
    assert timeutils.to_business_time(start.replace(tzinfo=None)).hour == 8
