import json
import logging
from typing import Optional

from a11y_engine.features.enrichment.services.gateway import AIGateway
from a11y_engine.features.remediation.schemas.plan import RemediationPlan
from a11y_engine.platform.exceptions import EnrichmentError

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a digital accessibility consultant writing for non-technical managers. "
    "Answer in plain prose, no markdown."
)

MAX_SUMMARY_ITEMS = 10


def fallback_summary(plan: RemediationPlan) -> str:
    if not plan.items and not plan.unscheduled:
        return "No accessibility issue was found in the audited pages; no remediation work is planned."

    current = f"{plan.current_rate:.2f}%" if plan.current_rate is not None else "unknown"
    text = (
        f"This plan schedules {len(plan.items)} remediation actions from {plan.start_year} Q{plan.start_quarter} "
        f"to {plan.end_year}, for an estimated {plan.total_effort_hours} hours of work. "
        f"It aims to raise the conformity rate from {current} to {plan.target_rate:.2f}%. "
    )
    if plan.quick_wins:
        text += f"{len(plan.quick_wins)} quick wins are scheduled first to remove blocking issues early. "
    if plan.unscheduled:
        text += (
            f"{len(plan.unscheduled)} lower-priority actions do not fit in this period "
            f"and need an extended plan or more capacity."
        )
    return text.strip()


class ExecutiveSummaryService:
    """Short management summary of a plan, written by the AI collaborator when it is available."""

    def __init__(self, gateway: Optional[AIGateway] = None):
        self.gateway = gateway or AIGateway()

    @staticmethod
    def build_prompt(plan: RemediationPlan) -> str:
        overview = {
            "startYear": plan.start_year,
            "endYear": plan.end_year,
            "currentRate": plan.current_rate,
            "targetRate": plan.target_rate,
            "scheduledItems": len(plan.items),
            "unscheduledItems": len(plan.unscheduled),
            "quickWins": len(plan.quick_wins),
            "totalEffortHours": plan.total_effort_hours,
            "topItems": [
                {"title": item.title, "severity": item.severity, "year": item.year, "quarter": item.quarter}
                for item in plan.items[:MAX_SUMMARY_ITEMS]
            ],
        }
        return (
            "Write an executive summary (4 to 6 sentences) of this accessibility remediation plan. "
            "Mention the conformity target, the quick wins and the overall effort.\n\n"
            f"Plan:\n{json.dumps(overview, ensure_ascii=False, indent=2)}"
        )

    def generate(self, plan: RemediationPlan) -> str:
        if not plan.items and not plan.unscheduled:
            return fallback_summary(plan)
        try:
            text = self.gateway.complete(self.build_prompt(plan), system_prompt=SUMMARY_SYSTEM_PROMPT)
            return text.strip()
        except EnrichmentError as e:
            logger.warning(f"Executive summary generation failed, using template: {e}")
            return fallback_summary(plan)
