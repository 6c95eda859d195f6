import logging
from typing import Any, Dict, Optional

from a11y_engine.platform.celery_app import celery_app
from a11y_engine.platform.db.session import SessionLocal

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="a11y_engine.features.remediation.workers.tasks.generate_remediation_plan",
    max_retries=2,
    default_retry_delay=60,
)
def generate_remediation_plan(
    self,
    campaign_id: str,
    duration_years: int = 2,
    start_year: Optional[int] = None,
    start_quarter: Optional[int] = None,
    with_summary: bool = True,
) -> Dict[str, Any]:
    """
    Build and store the remediation plan of a campaign from its completed scans.

    Returns:
        Dict with the plan id and its item counts
    """
    from a11y_engine.features.audit.services.repository import ScanRepository
    from a11y_engine.features.remediation.schemas.plan import PlanRequest
    from a11y_engine.features.remediation.services.aggregation import CampaignAggregator
    from a11y_engine.features.remediation.services.plan_saver import PlanSaver
    from a11y_engine.features.remediation.services.planner import RemediationPlanner

    logger.info(f"Generating remediation plan for campaign {campaign_id}")
    db = SessionLocal()
    try:
        request = PlanRequest(
            campaign_id=campaign_id,
            scan_ids=ScanRepository.completed_scan_ids(db, campaign_id),
            duration_years=duration_years,
            start_year=start_year,
            start_quarter=start_quarter,
            with_summary=with_summary,
        )
        plan, aggregate = RemediationPlanner(CampaignAggregator.from_session_factory(SessionLocal)).build(request)
        record = PlanSaver.replace(db, plan)
    except ValueError:
        raise
    except Exception as e:
        logger.error(f"Remediation plan for campaign {campaign_id} failed: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()

    return {
        "plan_id": record.id,
        "campaign_id": campaign_id,
        "scheduled": len(plan.items),
        "unscheduled": len(plan.unscheduled),
        "scans": len(aggregate.scans),
    }
