"""Commission distribution API endpoints.

Specific /distributions/export and /distributions/statement routes must be
defined BEFORE /distributions/{policy_id}, otherwise FastAPI will try to
match "export" as an integer policy_id.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import (
    CommissionError, NoApplicableGridError, PartyNotFoundError, PersistenceError,
    PolicyNotFoundError, ResyncInProgressError, ValidationError,
)
from app.models.commission import CommissionTier as TierModel
from app.schemas.commission import (
    CommissionDistribution, CommissionPreview, CommissionTier, CommissionTierCreate,
    DistributionList, DistributionTotals, ResyncFailure, ResyncResponse,
)
from app.services.commission import CommissionDistributionService, distribution_totals

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/commissions", tags=["commissions"])

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    PolicyNotFoundError: status.HTTP_404_NOT_FOUND,
    PartyNotFoundError: status.HTTP_404_NOT_FOUND,
    NoApplicableGridError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ResyncInProgressError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_response(exc: CommissionError) -> JSONResponse:
    code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content=exc.as_dict())


# ── Calculation ──────────────────────────────────────────────────────

@router.post("/tenants/{tenant_id}/policies/{policy_id}/calculate", response_model=CommissionDistribution)
def calculate_policy_commission(tenant_id: int, policy_id: int, db: Session = Depends(get_db)):
    """Recalculate and persist one policy's commission distribution."""
    service = CommissionDistributionService(db)
    try:
        distribution = service.calculate_policy(tenant_id, policy_id)
    except CommissionError as e:
        return _error_response(e)
    return CommissionDistribution.model_validate(distribution)


@router.get("/tenants/{tenant_id}/policies/{policy_id}/preview", response_model=CommissionPreview)
def preview_policy_commission(tenant_id: int, policy_id: int, db: Session = Depends(get_db)):
    """Compute a policy's distribution without saving it."""
    service = CommissionDistributionService(db)
    try:
        return CommissionPreview(**service.preview_policy(tenant_id, policy_id))
    except CommissionError as e:
        return _error_response(e)


@router.post("/tenants/{tenant_id}/resync", response_model=ResyncResponse)
def resync_tenant_commissions(tenant_id: int, db: Session = Depends(get_db)):
    """Recalculate every commissionable policy of the tenant. Per-policy failures are listed, not raised."""
    service = CommissionDistributionService(db)
    try:
        result = service.resync_tenant(tenant_id)
    except CommissionError as e:
        return _error_response(e)
    return ResyncResponse(
        tenant_id=tenant_id,
        succeeded=[CommissionDistribution.model_validate(d) for d in result.succeeded],
        failed=[ResyncFailure(**f.as_dict()) for f in result.failed],
        cancelled=result.cancelled,
    )


@router.post("/tenants/{tenant_id}/resync/async", status_code=status.HTTP_202_ACCEPTED)
def enqueue_tenant_resync(tenant_id: int):
    """Queue a background resync on the Celery worker."""
    from app.tasks.async_tasks import resync_tenant_commissions as resync_task

    task = resync_task.delay(tenant_id)
    logger.info(f"Queued commission resync for tenant {tenant_id} as task {task.id}")
    return {"tenant_id": tenant_id, "task_id": task.id, "status": "queued"}


# ── Distributions ────────────────────────────────────────────────────

@router.get("/tenants/{tenant_id}/distributions", response_model=DistributionList)
def list_distributions(
    tenant_id: int,
    product_type: Optional[str] = None,
    provider: Optional[str] = None,
    source_type: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List persisted distributions with totals"""
    service = CommissionDistributionService(db)
    rows = service.list_distributions(tenant_id, product_type, provider, source_type, search)
    return DistributionList(
        data=[CommissionDistribution.model_validate(r) for r in rows],
        totals=DistributionTotals(**distribution_totals(rows)),
    )


@router.get("/tenants/{tenant_id}/distributions/export")
def export_distributions(
    tenant_id: int,
    product_type: Optional[str] = None,
    provider: Optional[str] = None,
    source_type: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Download distributions as CSV, one row per policy."""
    from app.services.commission_export import distributions_to_csv

    service = CommissionDistributionService(db)
    rows = service.list_distributions(tenant_id, product_type, provider, source_type, search)
    filename = f"policy-commission-distribution-{tenant_id}.csv"
    return Response(
        content=distributions_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/tenants/{tenant_id}/distributions/statement")
def download_distribution_statement(tenant_id: int, db: Session = Depends(get_db)):
    """Download a PDF statement of the tenant's distributions."""
    from app.services.commission_pdf import generate_distribution_pdf

    service = CommissionDistributionService(db)
    rows = service.list_distributions(tenant_id)
    pdf_bytes = generate_distribution_pdf(f"Tenant {tenant_id}", rows, distribution_totals(rows))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Commission_Statement_{tenant_id}.pdf"'},
    )


@router.get("/tenants/{tenant_id}/distributions/{policy_id}", response_model=CommissionDistribution)
def get_distribution(tenant_id: int, policy_id: int, db: Session = Depends(get_db)):
    service = CommissionDistributionService(db)
    distribution = service.get_distribution(tenant_id, policy_id)
    if not distribution:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No commission distribution for this policy"
        )
    return CommissionDistribution.model_validate(distribution)


# ── Tiers ────────────────────────────────────────────────────────────

@router.get("/tenants/{tenant_id}/tiers", response_model=List[CommissionTier])
def list_commission_tiers(tenant_id: int, db: Session = Depends(get_db)):
    """List all active commission tiers"""
    tiers = db.query(TierModel).filter(
        TierModel.tenant_id == tenant_id,
        TierModel.is_active == True
    ).order_by(TierModel.name).all()

    return tiers


@router.post("/tenants/{tenant_id}/tiers", response_model=CommissionTier, status_code=status.HTTP_201_CREATED)
def create_commission_tier(tenant_id: int, tier_data: CommissionTierCreate, db: Session = Depends(get_db)):
    """Create a new commission tier"""
    existing = db.query(TierModel).filter(
        TierModel.tenant_id == tenant_id,
        TierModel.name == tier_data.name
    ).first()

    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tier name already exists"
        )

    tier = TierModel(tenant_id=tenant_id, **tier_data.model_dump())
    db.add(tier)
    db.commit()
    db.refresh(tier)

    return tier
