import logging

from app.celery_app import celery_app
from app.core.database import SessionLocal
from app.core.exceptions import CommissionError
from app.services.commission import CommissionDistributionService

logger = logging.getLogger(__name__)


@celery_app.task(name="resync_tenant_commissions")
def resync_tenant_commissions(tenant_id: int):
    """
    Async task to recalculate every commissionable policy of a tenant
    """
    db = SessionLocal()
    try:
        service = CommissionDistributionService(db)
        result = service.resync_tenant(tenant_id)
        return result.summary()
    except CommissionError as e:
        logger.warning(f"Commission resync for tenant {tenant_id} not run: {e.message}")
        return {"tenant_id": tenant_id, "error": e.reason, "detail": e.message}
    finally:
        db.close()


@celery_app.task(name="calculate_policy_commission")
def calculate_policy_commission(tenant_id: int, policy_id: int):
    """
    Async task to recalculate one policy's distribution (e.g. right after binding)
    """
    db = SessionLocal()
    try:
        service = CommissionDistributionService(db)
        distribution = service.calculate_policy(tenant_id, policy_id)
        return {
            "policy_id": policy_id,
            "status": distribution.commission_status,
            "insurer_commission": str(distribution.insurer_commission),
            "broker_share": str(distribution.broker_share),
        }
    except CommissionError as e:
        return {"policy_id": policy_id, "status": "failed", "error": e.reason, "detail": e.message}
    finally:
        db.close()
