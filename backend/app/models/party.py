"""Business-source parties: employees, external agents and MISP channel partners.

All three share the same commission fields. An override percentage always wins
over the tier; neither set means the party's split is resolved by the engine.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func
from app.core.database import Base


class CommissionPartyMixin:
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)

    override_percentage = Column(Numeric(5, 2), nullable=True)  # e.g. 85.00
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @declared_attr
    def commission_tier_id(cls):
        return Column(Integer, ForeignKey("commission_tiers.id"), nullable=True)

    @declared_attr
    def commission_tier(cls):
        return relationship("CommissionTier")


class Employee(CommissionPartyMixin, Base):
    __tablename__ = "employees"

    name = Column(String, nullable=False)
    employee_code = Column(String, nullable=True, index=True)

    @property
    def display_name(self):
        return self.name

    @property
    def code(self):
        return self.employee_code


class Agent(CommissionPartyMixin, Base):
    __tablename__ = "agents"

    agent_name = Column(String, nullable=False)
    agent_code = Column(String, nullable=True, index=True)

    @property
    def display_name(self):
        return self.agent_name

    @property
    def code(self):
        return self.agent_code


class Misp(CommissionPartyMixin, Base):
    __tablename__ = "misps"

    channel_partner_name = Column(String, nullable=False)
    dealer_code = Column(String, nullable=True, index=True)

    @property
    def display_name(self):
        return self.channel_partner_name

    @property
    def code(self):
        return self.dealer_code
