"""
Pytest configuration and fixtures.
"""
import os

# Settings are read at import time; point the app at SQLite before importing it
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
import app.models  # noqa: F401
from app.models import (
    Agent, CommissionTier, Employee, GeneralPayoutGrid, HealthPayoutGrid, LifePayoutGrid,
    Misp, MotorPayoutGrid, Policy, TenantCommissionSettings,
)

TENANT_ID = 1
OTHER_TENANT_ID = 2

GRID_MODELS = {
    "motor": MotorPayoutGrid,
    "health": HealthPayoutGrid,
    "life": LifePayoutGrid,
    "general": GeneralPayoutGrid,
}


@pytest.fixture
def db_engine():
    """Create test database engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    """Create test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ── Factories ────────────────────────────────────────────────────────

@pytest.fixture
def make_tier(db):
    def _make(name="Gold", base_percentage="70", tenant_id=TENANT_ID, is_active=True):
        tier = CommissionTier(
            tenant_id=tenant_id,
            name=name,
            base_percentage=Decimal(base_percentage),
            is_active=is_active,
        )
        db.add(tier)
        db.commit()
        return tier
    return _make


@pytest.fixture
def make_agent(db):
    def _make(name="Ravi Kumar", code="AG-001", tier=None, override=None, tenant_id=TENANT_ID):
        agent = Agent(
            tenant_id=tenant_id,
            agent_name=name,
            agent_code=code,
            commission_tier_id=tier.id if tier else None,
            override_percentage=Decimal(override) if override is not None else None,
        )
        db.add(agent)
        db.commit()
        return agent
    return _make


@pytest.fixture
def make_employee(db):
    def _make(name="Asha Nair", code="EMP-001", tier=None, override=None, tenant_id=TENANT_ID):
        employee = Employee(
            tenant_id=tenant_id,
            name=name,
            employee_code=code,
            commission_tier_id=tier.id if tier else None,
            override_percentage=Decimal(override) if override is not None else None,
        )
        db.add(employee)
        db.commit()
        return employee
    return _make


@pytest.fixture
def make_misp(db):
    def _make(name="City Motors", code="DLR-9", tier=None, override=None, tenant_id=TENANT_ID):
        misp = Misp(
            tenant_id=tenant_id,
            channel_partner_name=name,
            dealer_code=code,
            commission_tier_id=tier.id if tier else None,
            override_percentage=Decimal(override) if override is not None else None,
        )
        db.add(misp)
        db.commit()
        return misp
    return _make


@pytest.fixture
def make_grid(db):
    def _make(
        category="motor",
        provider=None,
        rate="10",
        reward="0",
        bonus="0",
        min_premium=None,
        max_premium=None,
        effective_from=date(2024, 1, 1),
        effective_to=None,
        version=1,
        tenant_id=TENANT_ID,
        product_category=None,
        is_active=True,
    ):
        model = GRID_MODELS[category]
        grid = model(
            tenant_id=tenant_id,
            product_category=product_category or category.capitalize(),
            provider=provider,
            min_premium=Decimal(min_premium) if min_premium is not None else None,
            max_premium=Decimal(max_premium) if max_premium is not None else None,
            commission_rate=Decimal(rate),
            reward_rate=Decimal(reward),
            bonus_rate=Decimal(bonus),
            effective_from=effective_from,
            effective_to=effective_to,
            version=version,
            is_active=is_active,
        )
        db.add(grid)
        db.commit()
        return grid
    return _make


@pytest.fixture
def make_policy(db):
    counter = {"n": 0}

    def _make(
        premium="100000",
        category="Motor",
        provider="Acme General",
        source_type="direct",
        agent=None,
        employee=None,
        misp=None,
        tenant_id=TENANT_ID,
        policy_status="active",
        bind_date=date(2025, 6, 1),
        customer_name="Test Customer",
        policy_number=None,
    ):
        counter["n"] += 1
        policy = Policy(
            tenant_id=tenant_id,
            policy_number=policy_number or f"POL-{counter['n']:04d}",
            customer_name=customer_name,
            product_category=category,
            provider=provider,
            premium_amount=Decimal(premium) if premium is not None else None,
            source_type=source_type,
            agent_id=agent.id if agent else None,
            employee_id=employee.id if employee else None,
            misp_id=misp.id if misp else None,
            policy_status=policy_status,
            bind_date=bind_date,
        )
        db.add(policy)
        db.commit()
        return policy
    return _make


@pytest.fixture
def tenant_settings(db):
    def _make(employee_share_percentage, tenant_id=TENANT_ID):
        row = TenantCommissionSettings(
            tenant_id=tenant_id,
            employee_share_percentage=(
                Decimal(employee_share_percentage) if employee_share_percentage is not None else None
            ),
        )
        db.add(row)
        db.commit()
        return row
    return _make
