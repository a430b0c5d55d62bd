from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class CommissionDistributionBase(BaseModel):
    policy_id: int
    policy_number: str
    customer_name: Optional[str] = None
    product_type: Optional[str] = None
    provider: Optional[str] = None
    premium_amount: Decimal
    source_type: str
    source_name: str
    source_code: Optional[str] = None
    base_rate: Decimal
    reward_rate: Decimal
    bonus_rate: Decimal
    total_rate: Decimal
    insurer_commission: Decimal
    agent_commission: Decimal
    misp_commission: Decimal
    employee_commission: Decimal
    broker_share: Decimal
    party_percentage: Decimal
    share_mode: str
    grid_id: int
    grid_table: str
    tier_name: Optional[str] = None
    override_used: bool
    commission_status: str


class CommissionDistribution(CommissionDistributionBase):
    calc_date: datetime

    class Config:
        from_attributes = True


class CommissionPreview(CommissionDistributionBase):
    calc_date: Optional[datetime] = None


class DistributionTotals(BaseModel):
    total_policies: int
    total_premium: Decimal
    total_insurer_commission: Decimal
    total_agent_commission: Decimal
    total_misp_commission: Decimal
    total_employee_commission: Decimal
    total_broker_share: Decimal


class DistributionList(BaseModel):
    data: List[CommissionDistribution]
    totals: DistributionTotals


class ResyncFailure(BaseModel):
    policy_id: int
    policy_number: Optional[str] = None
    reason: str
    message: str


class ResyncResponse(BaseModel):
    tenant_id: int
    succeeded: List[CommissionDistribution]
    failed: List[ResyncFailure]
    cancelled: bool = False


class CommissionTierBase(BaseModel):
    name: str
    base_percentage: Decimal = Field(..., ge=0, le=100)
    description: Optional[str] = None


class CommissionTierCreate(CommissionTierBase):
    pass


class CommissionTierInDB(CommissionTierBase):
    id: int
    tenant_id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommissionTier(CommissionTierInDB):
    pass
