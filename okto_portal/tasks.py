import logging

from okto_portal.extensions import celery
from okto_portal.services.payout_service import payout_service

logger = logging.getLogger(__name__)


@celery.task(name="okto_portal.reconcile_pending_credits")
def reconcile_pending_credits(limit=None):
    """Periodic sweep that applies point credits left pending after a failed payout."""
    summary = payout_service.reconcile_pending_credits(limit=limit)
    if summary["failed"]:
        logger.error(f"💥 {summary['failed']} credits still pending after reconciliation.")
    return summary
