from decimal import Decimal

import pytest

from app.core.exceptions import ValidationError
from app.services.distribution import (
    calculate_insurer_commission, distribute, round_currency,
)


def test_round_currency_is_half_up():
    assert round_currency(Decimal("2.345")) == Decimal("2.35")
    assert round_currency(Decimal("2.344")) == Decimal("2.34")
    assert round_currency(Decimal("0.005")) == Decimal("0.01")


def test_insurer_commission():
    assert calculate_insurer_commission(Decimal("100000"), Decimal("10")) == Decimal("10000.00")
    assert calculate_insurer_commission(Decimal("1234.57"), Decimal("12.5")) == Decimal("154.32")


def test_zero_premium_is_zero_commission():
    assert calculate_insurer_commission(Decimal("0"), Decimal("15")) == Decimal("0.00")

    amounts = distribute(Decimal("0.00"), "agent", Decimal("70"))

    assert amounts.agent_commission == Decimal("0.00")
    assert amounts.broker_share == Decimal("0.00")


@pytest.mark.parametrize("premium,rate", [(None, "10"), ("-1", "10"), ("100", "-0.5")])
def test_invalid_inputs_rejected(premium, rate):
    with pytest.raises(ValidationError):
        calculate_insurer_commission(premium, rate)


def test_direct_business_goes_to_broker():
    amounts = distribute(Decimal("10000.00"), "direct", Decimal("70"))

    assert amounts.party_commission == Decimal("0.00")
    assert amounts.broker_share == Decimal("10000.00")


def test_only_source_party_column_is_filled():
    amounts = distribute(Decimal("4000.00"), "misp", Decimal("70"))

    assert amounts.misp_commission == Decimal("2800.00")
    assert amounts.agent_commission == Decimal("0.00")
    assert amounts.employee_commission == Decimal("0.00")
    assert amounts.broker_share == Decimal("1200.00")


def test_broker_share_is_remainder_after_rounding():
    # 33.33% of 100.01 = 33.333333 -> 33.33, broker keeps 66.68
    amounts = distribute(Decimal("100.01"), "agent", Decimal("33.33"))

    assert amounts.agent_commission == Decimal("33.33")
    assert amounts.broker_share == Decimal("66.68")


@pytest.mark.parametrize("premium", ["0.01", "1", "999.99", "12345.67", "50000", "7777777.77"])
@pytest.mark.parametrize("rate", ["0", "0.0125", "7.5", "12.3456", "35"])
@pytest.mark.parametrize("percentage", ["0", "33.33", "66.67", "85", "100"])
def test_split_always_adds_back_to_insurer_commission(premium, rate, percentage):
    insurer = calculate_insurer_commission(Decimal(premium), Decimal(rate))
    amounts = distribute(insurer, "employee", Decimal(percentage))

    assert amounts.party_commission + amounts.broker_share == insurer
    assert amounts.broker_share >= 0


@pytest.mark.parametrize("percentage", ["-0.01", "100.01"])
def test_percentage_out_of_range_rejected(percentage):
    with pytest.raises(ValidationError):
        distribute(Decimal("100.00"), "agent", Decimal(percentage))


def test_unknown_source_type_rejected():
    with pytest.raises(ValidationError) as exc:
        distribute(Decimal("100.00"), "broker", Decimal("10"))

    assert exc.value.reason == "validation_error"


def test_minor_units_follow_places_argument():
    assert calculate_insurer_commission(Decimal("1001"), Decimal("10"), places=0) == Decimal("100")
    assert round_currency(Decimal("1.2345"), places=3) == Decimal("1.235")
