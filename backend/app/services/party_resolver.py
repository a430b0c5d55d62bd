"""Resolve which percentage of the insurer commission a policy's source party earns.

Precedence: override percentage > commission tier > (employees only) the
tenant's default employee share > nothing. The tenant default is an explicit
argument of ``PartyResolver.resolve`` so callers always see where it comes from.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from app.core.exceptions import PartyNotFoundError, ValidationError
from app.models.commission import ShareMode
from app.models.party import Agent, Employee, Misp
from app.models.policy import SourceType
from app.services.distribution import HUNDRED, ZERO, validate_source_type

logger = logging.getLogger(__name__)

PERCENT_STEP = Decimal("0.01")

PARTY_MODELS = {
    SourceType.AGENT.value: Agent,
    SourceType.EMPLOYEE.value: Employee,
    SourceType.MISP.value: Misp,
}


@dataclass(frozen=True)
class PartyRecord:
    party_id: int
    source_type: str
    name: str
    code: Optional[str] = None
    override_percentage: Optional[Decimal] = None
    tier_name: Optional[str] = None
    tier_percentage: Optional[Decimal] = None


@dataclass(frozen=True)
class ResolvedShare:
    mode: ShareMode
    percentage: Decimal
    source_name: str
    source_code: Optional[str] = None
    tier_name: Optional[str] = None

    @property
    def override_used(self) -> bool:
        return self.mode == ShareMode.OVERRIDE


DIRECT_SHARE = ResolvedShare(mode=ShareMode.DIRECT, percentage=ZERO, source_name="Direct")


class PartyRepository(Protocol):
    def get_party(self, tenant_id: int, source_type: str, party_id: int) -> Optional[PartyRecord]:
        ...


class SqlPartyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_party(self, tenant_id: int, source_type: str, party_id: int) -> Optional[PartyRecord]:
        model = PARTY_MODELS[source_type]
        party = (
            self.db.query(model)
            .filter(model.id == party_id, model.tenant_id == tenant_id)
            .first()
        )
        if not party:
            return None

        # Inactive or foreign-tenant tiers do not count as "resolved"
        tier = party.commission_tier
        if tier is not None and (not tier.is_active or tier.tenant_id != tenant_id):
            tier = None

        return PartyRecord(
            party_id=party.id,
            source_type=source_type,
            name=party.display_name,
            code=party.code,
            override_percentage=party.override_percentage,
            tier_name=tier.name if tier else None,
            tier_percentage=tier.base_percentage if tier else None,
        )


def _checked_percentage(value, label: str) -> Decimal:
    value = Decimal(value)
    if value < 0 or value > HUNDRED:
        raise ValidationError(f"{label} must be between 0 and 100 (got {value})")
    # party_percentage is stored as Numeric(5, 2); split with the value that gets stored
    return value.quantize(PERCENT_STEP, rounding=ROUND_HALF_UP)


class PartyResolver:
    def __init__(self, parties: PartyRepository, strict: bool = False):
        self.parties = parties
        self.strict = strict

    def resolve(
        self,
        tenant_id: int,
        source_type: str,
        party_id: Optional[int],
        employee_default_percentage: Optional[Decimal] = None,
        policy_id: Optional[int] = None,
    ) -> ResolvedShare:
        validate_source_type(source_type)
        if source_type == SourceType.DIRECT.value:
            return DIRECT_SHARE

        if party_id is None:
            raise PartyNotFoundError(
                f"Policy declares source '{source_type}' but has no {source_type} assigned",
                policy_id=policy_id,
            )

        party = self.parties.get_party(tenant_id, source_type, party_id)
        if party is None:
            raise PartyNotFoundError(
                f"{source_type.capitalize()} {party_id} not found for tenant {tenant_id}",
                policy_id=policy_id,
            )

        if party.override_percentage is not None:
            return ResolvedShare(
                mode=ShareMode.OVERRIDE,
                percentage=_checked_percentage(party.override_percentage, "Override percentage"),
                source_name=party.name,
                source_code=party.code,
                tier_name=party.tier_name,
            )

        if party.tier_percentage is not None:
            return ResolvedShare(
                mode=ShareMode.TIER,
                percentage=_checked_percentage(party.tier_percentage, "Tier percentage"),
                source_name=party.name,
                source_code=party.code,
                tier_name=party.tier_name,
            )

        if source_type == SourceType.EMPLOYEE.value and employee_default_percentage is not None:
            return ResolvedShare(
                mode=ShareMode.TENANT_DEFAULT,
                percentage=_checked_percentage(employee_default_percentage, "Employee share percentage"),
                source_name=party.name,
                source_code=party.code,
            )

        message = (
            f"{source_type.capitalize()} {party.name} ({party_id}) has no override, "
            f"tier or default share configured"
        )
        if self.strict:
            raise ValidationError(message, policy_id=policy_id)
        logger.warning(f"Policy {policy_id}: {message}; commission goes to broker share")
        return ResolvedShare(
            mode=ShareMode.NONE,
            percentage=ZERO,
            source_name=party.name,
            source_code=party.code,
        )
