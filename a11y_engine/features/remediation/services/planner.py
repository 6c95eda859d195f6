import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from a11y_engine.features.audit.schemas.scan import Scan
from a11y_engine.features.audit.services.pipeline import AuditPipeline
from a11y_engine.features.remediation.schemas.plan import InlineScan, PlanRequest, RemediationPlan
from a11y_engine.features.remediation.services.aggregation import CampaignAggregate, CampaignAggregator
from a11y_engine.features.remediation.services.scheduler import RemediationScheduler
from a11y_engine.features.remediation.services.summary import ExecutiveSummaryService

logger = logging.getLogger(__name__)


def current_quarter(moment: Optional[datetime] = None) -> Tuple[int, int]:
    moment = moment or datetime.now(timezone.utc)
    return moment.year, (moment.month - 1) // 3 + 1


class RemediationPlanner:
    """Campaign aggregation, then scheduling, then the optional executive summary."""

    def __init__(
        self,
        aggregator: CampaignAggregator,
        pipeline: Optional[AuditPipeline] = None,
        summary_service: Optional[ExecutiveSummaryService] = None,
    ):
        self.aggregator = aggregator
        self.pipeline = pipeline
        self.summary_service = summary_service

    def audit_inline(self, scans: List[InlineScan], campaign_id: Optional[str]) -> List[Scan]:
        if not scans:
            return []
        if self.pipeline is None:
            raise ValueError("Inline scans need an audit pipeline")
        audited = []
        for inline in scans:
            scan = Scan(url=inline.url, campaign_id=campaign_id)
            self.pipeline.run(scan, inline.payload, html=inline.html)
            audited.append(scan)
        return audited

    def build(self, request: PlanRequest) -> Tuple[RemediationPlan, CampaignAggregate]:
        now_year, now_quarter = current_quarter()
        now = (request.start_year or now_year, request.start_quarter or now_quarter)

        inline = self.audit_inline(request.scans, request.campaign_id)
        aggregate = self.aggregator.aggregate(request.scan_ids, extra_scans=inline)

        current_rate = request.current_rate if request.current_rate is not None else aggregate.current_rate
        plan = RemediationScheduler.build_plan(
            aggregate.groups,
            duration_years=request.duration_years,
            now=now,
            current_rate=current_rate,
            campaign_id=request.campaign_id,
        )

        if request.with_summary:
            service = self.summary_service or ExecutiveSummaryService()
            plan.executive_summary = service.generate(plan)

        return plan, aggregate
