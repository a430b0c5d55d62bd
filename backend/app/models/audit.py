"""Audit trail for commission calculations."""
import enum

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from app.core.database import Base


class AuditAction(str, enum.Enum):
    COMMISSION_CALCULATED = "commission_calculated"
    COMMISSION_FAILED = "commission_failed"
    COMMISSION_RESYNC = "commission_resync"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    action = Column(String, nullable=False, index=True)
    entity_type = Column(String(50), nullable=True)  # "policy", "tenant"
    entity_id = Column(Integer, nullable=True)
    action_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, tenant_id={self.tenant_id}, action={self.action})>"
