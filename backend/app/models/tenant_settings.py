"""Tenant-level commission configuration."""
from sqlalchemy import Column, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from app.core.database import Base


class TenantCommissionSettings(Base):
    """Per-tenant commission defaults.

    employee_share_percentage is the share an employee receives when they have
    neither an override nor a tier. It is read once per calculation and passed
    explicitly into the party resolver.
    """
    __tablename__ = "tenant_commission_settings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, unique=True, index=True)
    employee_share_percentage = Column(Numeric(5, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
