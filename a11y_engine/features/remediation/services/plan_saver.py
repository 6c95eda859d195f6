import logging

from sqlalchemy.orm import Session

from a11y_engine.features.remediation.models.item import RemediationItemRecord
from a11y_engine.features.remediation.models.plan import RemediationPlanRecord
from a11y_engine.features.remediation.schemas.plan import RemediationItem, RemediationPlan

logger = logging.getLogger(__name__)


def _item_row(plan_id: str, item: RemediationItem, scheduled: bool = True, reason=None) -> RemediationItemRecord:
    return RemediationItemRecord(
        plan_id=plan_id,
        title=item.title,
        description=item.description,
        severity=item.severity,
        category=item.category.value,
        year=item.year,
        quarter=item.quarter,
        scheduled=scheduled,
        unscheduled_reason=reason,
        priority_rank=item.priority_rank,
        priority_score=item.priority_score,
        is_quick_win=item.is_quick_win,
        estimated_effort_hours=item.estimated_effort_hours,
        impact_score=item.impact_score,
        occurrence_count=item.occurrence_count,
        affected_scope_count=item.affected_scope_count,
        affected_scopes=list(item.affected_scopes),
        criteria=list(item.criteria),
        technical_details=item.technical_details,
        acceptance_criteria=item.acceptance_criteria,
    )


class PlanSaver:

    @staticmethod
    def replace(db: Session, plan: RemediationPlan) -> RemediationPlanRecord:
        """Store a plan, deleting the campaign's previous plan in the same transaction."""
        try:
            if plan.campaign_id:
                previous = (
                    db.query(RemediationPlanRecord)
                    .filter(RemediationPlanRecord.campaign_id == plan.campaign_id)
                    .all()
                )
                for record in previous:
                    db.delete(record)
                db.flush()

            record = RemediationPlanRecord(
                campaign_id=plan.campaign_id,
                duration_years=plan.duration_years,
                start_year=plan.start_year,
                start_quarter=plan.start_quarter,
                items_per_quarter=plan.items_per_quarter,
                current_rate=plan.current_rate,
                target_rate=plan.target_rate,
                total_effort_hours=plan.total_effort_hours,
                executive_summary=plan.executive_summary,
            )
            db.add(record)
            db.flush()

            rows = [_item_row(record.id, item) for item in plan.items]
            rows += [_item_row(record.id, u.item, scheduled=False, reason=u.reason) for u in plan.unscheduled]
            db.add_all(rows)

            db.commit()
            db.refresh(record)
            logger.info(
                f"Saved remediation plan {record.id} for campaign {plan.campaign_id}: "
                f"{len(plan.items)} scheduled, {len(plan.unscheduled)} unscheduled"
            )
            return record

        except Exception as e:
            db.rollback()
            logger.error(f"Failed to save remediation plan for campaign {plan.campaign_id}: {e}")
            raise
