import logging
from typing import Any, Dict, Optional

from a11y_engine.platform.celery_app import celery_app
from a11y_engine.platform.db.session import SessionLocal

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="a11y_engine.features.audit.workers.tasks.process_scan",
    max_retries=2,
    default_retry_delay=30,
)
def process_scan(
    self,
    url: str,
    payload: Dict[str, Any],
    campaign_id: Optional[str] = None,
    html: Optional[str] = None,
    scan_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run the audit pipeline for one page and save the result.

    Args:
        url: Audited page URL
        payload: Raw checker payload
        campaign_id: Campaign the scan belongs to
        html: Page markup, used for the not-applicable detection
        scan_id: Reuse an id to rerun a scan (its previous issues are replaced)

    Returns:
        Dict with the scan id, final status and group count
    """
    from a11y_engine.features.audit.schemas.scan import Scan
    from a11y_engine.features.audit.services.pipeline import AuditPipeline
    from a11y_engine.features.audit.services.result_saver import ScanResultSaver
    from a11y_engine.features.enrichment.services.cache import build_cache
    from a11y_engine.features.enrichment.services.enricher import IssueEnricher

    scan = Scan(url=url, campaign_id=campaign_id)
    if scan_id:
        scan.id = scan_id

    logger.info(f"[{scan.id}] Processing scan for {url}")
    result = AuditPipeline(IssueEnricher(build_cache())).run(scan, payload, html=html)

    db = SessionLocal()
    try:
        ScanResultSaver.save(db, result.scan)
    except Exception as e:
        logger.error(f"[{scan.id}] Could not save scan: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()

    return {
        "scan_id": scan.id,
        "status": result.scan.status.value,
        "groups": len(result.scan.groups),
        "error": result.error.message if result.error else None,
    }
