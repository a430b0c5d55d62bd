"""Commission distribution service.

The one place commission distributions are computed and persisted. Single
policy recalculation, bulk tenant resync, previews, the Celery task and the
reports all go through ``CommissionDistributionService``.

Per policy:
1. Validate premium and source type
2. Resolve the grid (product category, provider, premium, bind date)
3. Resolve the source party's share (override > tier > tenant default)
4. Split the insurer commission, broker keeps the remainder
5. Upsert the distribution row, sync status and audit entry in one transaction
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    CommissionError, PersistenceError, PolicyNotFoundError, UnexpectedCommissionError,
    ValidationError,
)
from app.models.audit import AuditAction
from app.models.commission import CommissionDistribution, CommissionStatus
from app.models.policy import CommissionSyncStatus, Policy, PolicyStatus, SourceType
from app.models.tenant_settings import TenantCommissionSettings
from app.services.audit import log_action
from app.services.distribution import (
    PARTY_COLUMNS, calculate_insurer_commission, distribute, validate_source_type,
)
from app.services.grid_matching import GridRepository, RateResolver, SqlGridRepository
from app.services.locks import policy_write_lock, tenant_resync_lock
from app.services.party_resolver import PartyRepository, PartyResolver, SqlPartyRepository

logger = logging.getLogger(__name__)

# Columns compared to decide whether a recalculation changed anything.
# calc_date is deliberately absent: an unchanged result leaves the row untouched.
DISTRIBUTION_FIELDS = (
    "tenant_id", "policy_number", "customer_name", "product_type", "provider",
    "premium_amount", "source_type", "source_name", "source_code",
    "grid_id", "grid_table", "base_rate", "reward_rate", "bonus_rate", "total_rate",
    "insurer_commission", "agent_commission", "misp_commission", "employee_commission",
    "broker_share", "party_percentage", "share_mode", "tier_name", "override_used",
    "commission_status",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ResyncFailure:
    policy_id: int
    policy_number: Optional[str]
    reason: str
    message: str

    def as_dict(self) -> Dict:
        return {
            "policy_id": self.policy_id,
            "policy_number": self.policy_number,
            "reason": self.reason,
            "message": self.message,
        }


@dataclass
class ResyncResult:
    tenant_id: int
    succeeded: List[CommissionDistribution] = field(default_factory=list)
    failed: List[ResyncFailure] = field(default_factory=list)
    cancelled: bool = False

    def summary(self) -> Dict:
        return {
            "tenant_id": self.tenant_id,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "cancelled": self.cancelled,
            "failures": [f.as_dict() for f in self.failed],
        }


class CommissionDistributionService:
    def __init__(
        self,
        db: Session,
        grids: Optional[GridRepository] = None,
        parties: Optional[PartyRepository] = None,
        strict_party_config: Optional[bool] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.db = db
        if strict_party_config is None:
            strict_party_config = settings.COMMISSION_STRICT_PARTY_CONFIG
        self.rates = RateResolver(grids or SqlGridRepository(db))
        self.parties = PartyResolver(parties or SqlPartyRepository(db), strict=strict_party_config)
        self.today = today or date.today

    # ── Lookups ──────────────────────────────────────────────────────

    def _load_policy(self, tenant_id: int, policy_id: int, for_update: bool = False) -> Policy:
        query = self.db.query(Policy).filter(Policy.id == policy_id, Policy.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        policy = query.first()
        if not policy:
            raise PolicyNotFoundError(f"Policy {policy_id} not found for tenant {tenant_id}", policy_id=policy_id)
        return policy

    def employee_default_percentage(self, tenant_id: int) -> Optional[Decimal]:
        """Tenant's configured employee share, else the deployment-wide default."""
        row = (
            self.db.query(TenantCommissionSettings)
            .filter(TenantCommissionSettings.tenant_id == tenant_id)
            .first()
        )
        if row is not None:
            return row.employee_share_percentage
        return settings.DEFAULT_EMPLOYEE_SHARE_PERCENTAGE

    # ── Calculation ──────────────────────────────────────────────────

    def compute(self, policy: Policy) -> Dict:
        """Compute the distribution values for a policy without writing anything."""
        if policy.premium_amount is None:
            raise ValidationError(f"Policy {policy.policy_number} has no premium amount", policy_id=policy.id)
        if policy.premium_amount < 0:
            raise ValidationError(
                f"Policy {policy.policy_number} has a negative premium ({policy.premium_amount})",
                policy_id=policy.id,
            )
        if not policy.product_category:
            raise ValidationError(f"Policy {policy.policy_number} has no product category", policy_id=policy.id)
        try:
            validate_source_type(policy.source_type)
        except ValidationError as e:
            e.policy_id = policy.id
            raise

        premium = Decimal(policy.premium_amount)
        rate = self.rates.resolve(
            tenant_id=policy.tenant_id,
            product_category=policy.product_category,
            provider=policy.provider,
            premium=premium,
            on_date=policy.bind_date or self.today(),
            policy_id=policy.id,
        )

        employee_default = None
        if policy.source_type == SourceType.EMPLOYEE.value:
            employee_default = self.employee_default_percentage(policy.tenant_id)
        share = self.parties.resolve(
            tenant_id=policy.tenant_id,
            source_type=policy.source_type,
            party_id=policy.source_party_id,
            employee_default_percentage=employee_default,
            policy_id=policy.id,
        )

        try:
            insurer = calculate_insurer_commission(premium, rate.total_rate)
            amounts = distribute(insurer, policy.source_type, share.percentage)
        except ValidationError as e:
            e.policy_id = policy.id
            raise

        values = {
            "tenant_id": policy.tenant_id,
            "policy_number": policy.policy_number,
            "customer_name": policy.customer_name,
            "product_type": policy.product_type or policy.product_category,
            "provider": policy.provider,
            "premium_amount": premium,
            "source_type": policy.source_type,
            "source_name": share.source_name,
            "source_code": share.source_code,
            "grid_id": rate.grid_id,
            "grid_table": rate.grid_table,
            "base_rate": rate.base_rate,
            "reward_rate": rate.reward_rate,
            "bonus_rate": rate.bonus_rate,
            "total_rate": rate.total_rate,
            "insurer_commission": amounts.insurer_commission,
            "broker_share": amounts.broker_share,
            "party_percentage": share.percentage,
            "share_mode": share.mode.value,
            "tier_name": share.tier_name,
            "override_used": share.override_used,
            "commission_status": CommissionStatus.CALCULATED.value,
        }
        for column in PARTY_COLUMNS.values():
            values[column] = getattr(amounts, column)
        return values

    def preview_policy(self, tenant_id: int, policy_id: int) -> Dict:
        policy = self._load_policy(tenant_id, policy_id)
        values = self.compute(policy)
        values["policy_id"] = policy.id
        values["calc_date"] = None
        return values

    # ── Persistence ──────────────────────────────────────────────────

    def _upsert(self, policy: Policy, values: Dict):
        existing = (
            self.db.query(CommissionDistribution)
            .filter(CommissionDistribution.policy_id == policy.id)
            .first()
        )

        if existing:
            unchanged = all(getattr(existing, name) == values[name] for name in DISTRIBUTION_FIELDS)
            if unchanged:
                return existing, False
            for name in DISTRIBUTION_FIELDS:
                setattr(existing, name, values[name])
            existing.calc_date = utcnow()
            return existing, True

        distribution = CommissionDistribution(policy_id=policy.id, calc_date=utcnow(), **values)
        self.db.add(distribution)
        return distribution, True

    def _record_failure(self, tenant_id: int, policy_id: int, error: CommissionError):
        """Mark the policy failed in its own transaction. The previous distribution row is kept."""
        try:
            policy = (
                self.db.query(Policy)
                .filter(Policy.id == policy_id, Policy.tenant_id == tenant_id)
                .first()
            )
            if policy is None:
                return
            policy.commission_sync_status = CommissionSyncStatus.FAILED.value
            policy.commission_sync_error = f"{error.reason}: {error.message}"[:1000]
            log_action(
                self.db, tenant_id, AuditAction.COMMISSION_FAILED,
                entity_type="policy", entity_id=policy_id,
                action_metadata={"reason": error.reason, "message": error.message[:500]},
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not record commission failure for policy {policy_id}: {e}")

    def calculate_policy(self, tenant_id: int, policy_id: int) -> CommissionDistribution:
        """Recalculate and upsert one policy's distribution.

        Raises NoApplicableGridError, PartyNotFoundError, PolicyNotFoundError,
        ValidationError or PersistenceError; never returns a zeroed result
        in place of an error.
        """
        if not tenant_id or not policy_id:
            raise ValidationError("tenant_id and policy_id are required", policy_id=policy_id)

        try:
            with policy_write_lock(self.db, policy_id):
                policy = self._load_policy(tenant_id, policy_id, for_update=True)
                values = self.compute(policy)
                distribution, changed = self._upsert(policy, values)

                policy.commission_sync_status = CommissionSyncStatus.CALCULATED.value
                policy.commission_sync_error = None
                policy.commission_synced_at = utcnow()
                log_action(
                    self.db, tenant_id, AuditAction.COMMISSION_CALCULATED,
                    entity_type="policy", entity_id=policy_id,
                    action_metadata={
                        "grid_id": values["grid_id"],
                        "grid_table": values["grid_table"],
                        "share_mode": values["share_mode"],
                        "insurer_commission": str(values["insurer_commission"]),
                        "broker_share": str(values["broker_share"]),
                        "changed": changed,
                    },
                )
                self.db.commit()
        except CommissionError as e:
            self.db.rollback()
            logger.warning(f"Commission for policy {policy_id} failed ({e.reason}): {e.message}")
            self._record_failure(tenant_id, policy_id, e)
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Writing commission distribution for policy {policy_id} failed: {e}", exc_info=True)
            error = PersistenceError(f"Could not save commission distribution: {str(e)[:300]}", policy_id=policy_id)
            self._record_failure(tenant_id, policy_id, error)
            raise error from e

        self.db.refresh(distribution)
        if changed:
            logger.info(
                f"Policy {policy_id} ({distribution.policy_number}): insurer={distribution.insurer_commission} "
                f"party={distribution.insurer_commission - distribution.broker_share} "
                f"broker={distribution.broker_share} via {distribution.grid_table}#{distribution.grid_id}"
            )
        else:
            logger.debug(f"Policy {policy_id}: distribution unchanged")
        return distribution

    def resync_tenant(
        self,
        tenant_id: int,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> ResyncResult:
        """Recalculate every commissionable policy of a tenant.

        One bad policy never aborts the batch; it lands in ``failed`` and the
        loop continues. ``should_cancel`` is checked between policies.
        """
        if not tenant_id:
            raise ValidationError("tenant_id is required")

        result = ResyncResult(tenant_id=tenant_id)
        with tenant_resync_lock(self.db, tenant_id):
            policies = (
                self.db.query(Policy.id, Policy.policy_number)
                .filter(
                    Policy.tenant_id == tenant_id,
                    Policy.policy_status == PolicyStatus.ACTIVE.value,
                    Policy.premium_amount.isnot(None),
                )
                .order_by(Policy.id)
                .all()
            )
            logger.info(f"Commission resync for tenant {tenant_id}: {len(policies)} policies")

            for policy_id, policy_number in policies:
                if should_cancel is not None and should_cancel():
                    result.cancelled = True
                    logger.info(f"Commission resync for tenant {tenant_id} cancelled before policy {policy_id}")
                    break
                try:
                    result.succeeded.append(self.calculate_policy(tenant_id, policy_id))
                except CommissionError as e:
                    result.failed.append(ResyncFailure(policy_id, policy_number, e.reason, e.message))
                except Exception as e:
                    self.db.rollback()
                    logger.error(f"Unexpected error for policy {policy_id} during resync: {e}", exc_info=True)
                    error = UnexpectedCommissionError(str(e)[:500], policy_id=policy_id)
                    self._record_failure(tenant_id, policy_id, error)
                    result.failed.append(ResyncFailure(policy_id, policy_number, error.reason, error.message))

            log_action(
                self.db, tenant_id, AuditAction.COMMISSION_RESYNC,
                entity_type="tenant", entity_id=tenant_id,
                action_metadata={
                    "succeeded": len(result.succeeded),
                    "failed": len(result.failed),
                    "cancelled": result.cancelled,
                },
            )
            self.db.commit()

        logger.info(
            f"Commission resync for tenant {tenant_id}: {len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed{' (cancelled)' if result.cancelled else ''}"
        )
        return result

    # ── Reporting ────────────────────────────────────────────────────

    def list_distributions(
        self,
        tenant_id: int,
        product_type: Optional[str] = None,
        provider: Optional[str] = None,
        source_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[CommissionDistribution]:
        query = self.db.query(CommissionDistribution).filter(CommissionDistribution.tenant_id == tenant_id)
        if product_type:
            query = query.filter(func.lower(CommissionDistribution.product_type) == product_type.strip().lower())
        if provider:
            query = query.filter(CommissionDistribution.provider == provider)
        if source_type:
            query = query.filter(CommissionDistribution.source_type == source_type)
        if search:
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            query = query.filter(or_(
                CommissionDistribution.policy_number.ilike(pattern, escape="\\"),
                CommissionDistribution.customer_name.ilike(pattern, escape="\\"),
            ))
        return query.order_by(CommissionDistribution.policy_id).all()

    def get_distribution(self, tenant_id: int, policy_id: int) -> Optional[CommissionDistribution]:
        return (
            self.db.query(CommissionDistribution)
            .filter(
                CommissionDistribution.tenant_id == tenant_id,
                CommissionDistribution.policy_id == policy_id,
            )
            .first()
        )


def distribution_totals(rows) -> Dict:
    zero = Decimal("0")
    return {
        "total_policies": len(rows),
        "total_premium": sum((r.premium_amount for r in rows), zero),
        "total_insurer_commission": sum((r.insurer_commission for r in rows), zero),
        "total_agent_commission": sum((r.agent_commission for r in rows), zero),
        "total_misp_commission": sum((r.misp_commission for r in rows), zero),
        "total_employee_commission": sum((r.employee_commission for r in rows), zero),
        "total_broker_share": sum((r.broker_share for r in rows), zero),
    }
