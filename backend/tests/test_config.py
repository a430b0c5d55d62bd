from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.config import Settings


@pytest.mark.parametrize("units", [-1, 3])
def test_minor_units_must_fit_amount_columns(units):
    with pytest.raises(ValidationError):
        Settings(CURRENCY_MINOR_UNITS=units)


@pytest.mark.parametrize("value", ["-1", "100.01"])
def test_employee_share_out_of_range_rejected(value):
    with pytest.raises(ValidationError):
        Settings(DEFAULT_EMPLOYEE_SHARE_PERCENTAGE=value)


def test_employee_share_rounded_to_stored_scale():
    settings = Settings(DEFAULT_EMPLOYEE_SHARE_PERCENTAGE="33.335", CURRENCY_MINOR_UNITS=0)

    assert settings.DEFAULT_EMPLOYEE_SHARE_PERCENTAGE == Decimal("33.34")
    assert settings.CURRENCY_MINOR_UNITS == 0
