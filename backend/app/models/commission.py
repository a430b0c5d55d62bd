from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Boolean, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class CommissionStatus(str, enum.Enum):
    CALCULATED = "calculated"


class ShareMode(str, enum.Enum):
    DIRECT = "direct"
    OVERRIDE = "override"
    TIER = "tier"
    TENANT_DEFAULT = "tenant_default"
    NONE = "none"


class CommissionTier(Base):
    """Named percentage bracket assignable to an agent, employee or MISP"""
    __tablename__ = "commission_tiers"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)

    name = Column(String, nullable=False)
    base_percentage = Column(Numeric(5, 2), nullable=False)  # share of insurer commission, e.g. 70.00

    description = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class PayoutGridMixin:
    """Columns shared by every payout grid table.

    A null provider is a wildcard; a null min/max premium or effective_to is open.
    Rates are percentages of premium (12.5 means 12.5%).
    """
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)

    product_category = Column(String, nullable=False, index=True)
    provider = Column(String, nullable=True, index=True)

    min_premium = Column(Numeric(12, 2), nullable=True)
    max_premium = Column(Numeric(12, 2), nullable=True)

    commission_rate = Column(Numeric(7, 4), nullable=False, default=0)
    reward_rate = Column(Numeric(7, 4), nullable=False, default=0)
    bonus_rate = Column(Numeric(7, 4), nullable=False, default=0)

    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class MotorPayoutGrid(PayoutGridMixin, Base):
    __tablename__ = "motor_payout_grid"


class HealthPayoutGrid(PayoutGridMixin, Base):
    __tablename__ = "health_payout_grid"


class LifePayoutGrid(PayoutGridMixin, Base):
    __tablename__ = "life_payout_grid"


class GeneralPayoutGrid(PayoutGridMixin, Base):
    """Grid rows for every product category without a dedicated table (travel, commercial, ...)"""
    __tablename__ = "general_payout_grid"


GRID_MODELS_BY_CATEGORY = {
    "motor": MotorPayoutGrid,
    "health": HealthPayoutGrid,
    "life": LifePayoutGrid,
}


def grid_model_for_category(product_category: str):
    return GRID_MODELS_BY_CATEGORY.get((product_category or "").strip().lower(), GeneralPayoutGrid)


class CommissionDistribution(Base):
    """Persisted result of one commission calculation, one row per policy.

    Downstream reports and CSV exports key off these column names.
    """
    __tablename__ = "commission_distributions"
    __table_args__ = (
        UniqueConstraint("policy_id", name="uq_commission_distributions_policy_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    policy_id = Column(Integer, ForeignKey("policies.id"), nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)

    # Policy snapshot
    policy_number = Column(String, nullable=False)
    customer_name = Column(String, nullable=True)
    product_type = Column(String, nullable=True)
    provider = Column(String, nullable=True)
    premium_amount = Column(Numeric(12, 2), nullable=False)

    # Business source
    source_type = Column(String, nullable=False)
    source_name = Column(String, nullable=False)
    source_code = Column(String, nullable=True)

    # Matched grid and rates
    grid_id = Column(Integer, nullable=False)
    grid_table = Column(String, nullable=False)
    base_rate = Column(Numeric(7, 4), nullable=False)
    reward_rate = Column(Numeric(7, 4), nullable=False)
    bonus_rate = Column(Numeric(7, 4), nullable=False)
    total_rate = Column(Numeric(7, 4), nullable=False)

    # Amounts
    insurer_commission = Column(Numeric(12, 2), nullable=False)
    agent_commission = Column(Numeric(12, 2), nullable=False, default=0)
    misp_commission = Column(Numeric(12, 2), nullable=False, default=0)
    employee_commission = Column(Numeric(12, 2), nullable=False, default=0)
    broker_share = Column(Numeric(12, 2), nullable=False)

    # How the party percentage was resolved
    party_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    share_mode = Column(String, nullable=False)
    tier_name = Column(String, nullable=True)
    override_used = Column(Boolean, nullable=False, default=False)

    commission_status = Column(String, default=CommissionStatus.CALCULATED.value, nullable=False)
    calc_date = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    policy = relationship("Policy", back_populates="distribution")
