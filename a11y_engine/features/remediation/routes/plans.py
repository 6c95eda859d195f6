import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from a11y_engine.features.audit.routes.scans import get_audit_pipeline
from a11y_engine.features.audit.services.pipeline import AuditPipeline
from a11y_engine.features.audit.services.repository import ScanRepository
from a11y_engine.features.remediation.schemas.plan import PlanRequest
from a11y_engine.features.remediation.services.aggregation import CampaignAggregator
from a11y_engine.features.remediation.services.plan_saver import PlanSaver
from a11y_engine.features.remediation.services.planner import RemediationPlanner
from a11y_engine.platform.db.session import get_db, get_session_factory
from a11y_engine.platform.exceptions import ErrorCode
from a11y_engine.platform.response import api_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/remediation", tags=["remediation"])


@router.post("/plans", summary="Build a remediation plan for a campaign")
def create_plan(
    data: PlanRequest,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
    pipeline: AuditPipeline = Depends(get_audit_pipeline),
):
    """
    Schedule the issue groups of a campaign over ``duration_years``.

    Scans come from ``scan_ids``, from ``scans`` (audited inline), or, when
    both are empty, from every completed scan of ``campaign_id``. Scans that
    are not completed are excluded and listed in the response.
    """
    if not data.scan_ids and not data.scans:
        if not data.campaign_id:
            return api_response(
                message="Provide scan_ids, scans or a campaign_id",
                status_code=status.HTTP_400_BAD_REQUEST,
                error_code=ErrorCode.missing_scan_source.value,
            )
        data.scan_ids = ScanRepository.completed_scan_ids(db, data.campaign_id)

    planner = RemediationPlanner(
        CampaignAggregator.from_session_factory(session_factory),
        pipeline=pipeline,
    )
    plan, aggregate = planner.build(data)

    plan_id = None
    if data.persist:
        plan_id = PlanSaver.replace(db, plan).id

    return api_response(
        data={
            "plan_id": plan_id,
            "plan": plan,
            "total_effort_hours": plan.total_effort_hours,
            "scan_count": len(aggregate.scans),
            "excluded_scan_ids": aggregate.excluded_scan_ids,
        },
        message="Remediation plan generated successfully",
        status_code=status.HTTP_201_CREATED,
    )
