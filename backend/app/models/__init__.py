from app.models.policy import Policy, PolicyStatus, SourceType, CommissionSyncStatus
from app.models.party import Agent, Employee, Misp
from app.models.commission import (
    CommissionTier, CommissionDistribution, CommissionStatus, ShareMode,
    MotorPayoutGrid, HealthPayoutGrid, LifePayoutGrid, GeneralPayoutGrid,
)
from app.models.tenant_settings import TenantCommissionSettings
from app.models.audit import AuditLog, AuditAction

__all__ = [
    "Policy",
    "PolicyStatus",
    "SourceType",
    "CommissionSyncStatus",
    "Agent",
    "Employee",
    "Misp",
    "CommissionTier",
    "CommissionDistribution",
    "CommissionStatus",
    "ShareMode",
    "MotorPayoutGrid",
    "HealthPayoutGrid",
    "LifePayoutGrid",
    "GeneralPayoutGrid",
    "TenantCommissionSettings",
    "AuditLog",
    "AuditAction",
]
