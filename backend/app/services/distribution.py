"""Commission distribution math.

1. Insurer commission = premium x total grid rate / 100, rounded half-up to
   the currency minor unit.
2. The source party gets its percentage of that, rounded the same way.
3. The broker keeps the remainder. It is never recomputed on its own, so
   party + broker always adds back to the insurer commission exactly.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.policy import SourceType

HUNDRED = Decimal("100")
ZERO = Decimal("0")

PARTY_COLUMNS = {
    SourceType.AGENT.value: "agent_commission",
    SourceType.MISP.value: "misp_commission",
    SourceType.EMPLOYEE.value: "employee_commission",
}


def round_currency(amount, places: Optional[int] = None) -> Decimal:
    if places is None:
        places = settings.CURRENCY_MINOR_UNITS
    return Decimal(amount).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def validate_source_type(source_type: str) -> str:
    valid = [s.value for s in SourceType]
    if source_type not in valid:
        raise ValidationError(f"Unknown source type '{source_type}'. Must be one of: {valid}")
    return source_type


def calculate_insurer_commission(premium, total_rate, places: Optional[int] = None) -> Decimal:
    if premium is None:
        raise ValidationError("Premium amount is required")
    premium = Decimal(premium)
    total_rate = Decimal(total_rate)
    if premium < 0:
        raise ValidationError(f"Premium amount cannot be negative (got {premium})")
    if total_rate < 0:
        raise ValidationError(f"Commission rate cannot be negative (got {total_rate})")
    return round_currency(premium * total_rate / HUNDRED, places)


@dataclass(frozen=True)
class DistributionAmounts:
    insurer_commission: Decimal
    agent_commission: Decimal
    misp_commission: Decimal
    employee_commission: Decimal
    broker_share: Decimal

    @property
    def party_commission(self) -> Decimal:
        return self.agent_commission + self.misp_commission + self.employee_commission


def distribute(
    insurer_commission: Decimal,
    source_type: str,
    percentage,
    places: Optional[int] = None,
) -> DistributionAmounts:
    """Split ``insurer_commission`` between the source party and the broker.

    ``percentage`` is ignored for direct business, which goes entirely to the
    broker. Only the column matching ``source_type`` receives a party amount.
    """
    validate_source_type(source_type)
    percentage = Decimal(percentage or 0)
    if percentage < 0 or percentage > HUNDRED:
        raise ValidationError(f"Party percentage must be between 0 and 100 (got {percentage})")

    zero = round_currency(ZERO, places)
    amounts = {column: zero for column in PARTY_COLUMNS.values()}

    party_commission = zero
    if source_type != SourceType.DIRECT.value:
        party_commission = round_currency(insurer_commission * percentage / HUNDRED, places)
        amounts[PARTY_COLUMNS[source_type]] = party_commission

    return DistributionAmounts(
        insurer_commission=insurer_commission,
        broker_share=insurer_commission - party_commission,
        **amounts,
    )
