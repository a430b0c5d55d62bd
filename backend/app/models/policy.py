from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class PolicyStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    LAPSED = "lapsed"
    EXPIRED = "expired"


class SourceType(str, enum.Enum):
    DIRECT = "direct"
    EMPLOYEE = "employee"
    AGENT = "agent"
    MISP = "misp"


class CommissionSyncStatus(str, enum.Enum):
    UNSYNCED = "unsynced"
    CALCULATING = "calculating"
    CALCULATED = "calculated"
    FAILED = "failed"


class Policy(Base):
    """A bound insurance contract. Written by underwriting, read by the commission engine."""
    __tablename__ = "policies"
    __table_args__ = (
        UniqueConstraint("tenant_id", "policy_number", name="uq_policies_tenant_policy_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)

    # Policy information
    policy_number = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=True)
    product_category = Column(String, nullable=False, index=True)  # "Motor", "Health", "Life", ...
    product_type = Column(String, nullable=True)  # display name e.g. "Private Car Package"
    provider = Column(String, nullable=True, index=True)
    premium_amount = Column(Numeric(12, 2), nullable=True)

    # Business source: exactly one of the party ids is used, picked by source_type
    source_type = Column(String, default=SourceType.DIRECT.value, nullable=False)
    agent_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    misp_id = Column(Integer, ForeignKey("misps.id"), nullable=True, index=True)

    # Status
    policy_status = Column(String, default=PolicyStatus.ACTIVE.value, nullable=False, index=True)

    # Commission sync bookkeeping
    commission_sync_status = Column(String, default=CommissionSyncStatus.UNSYNCED.value, nullable=False)
    commission_sync_error = Column(Text, nullable=True)
    commission_synced_at = Column(DateTime(timezone=True), nullable=True)

    # Dates
    bind_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    agent = relationship("Agent")
    employee = relationship("Employee")
    misp = relationship("Misp")
    distribution = relationship(
        "CommissionDistribution", back_populates="policy", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def source_party_id(self):
        return {
            SourceType.AGENT.value: self.agent_id,
            SourceType.EMPLOYEE.value: self.employee_id,
            SourceType.MISP.value: self.misp_id,
        }.get(self.source_type)
