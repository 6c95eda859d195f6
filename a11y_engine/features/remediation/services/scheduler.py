import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple

from a11y_engine.features.audit.schemas.issue import IssueGroup, IssueSeverity
from a11y_engine.features.audit.services.heuristics import category, complexity
from a11y_engine.features.audit.services.priority import PriorityScorer
from a11y_engine.features.remediation.schemas.plan import (
    ActionCategory,
    AnnualPlan,
    QuarterPlan,
    RemediationItem,
    RemediationPlan,
    UnscheduledItem,
)
from a11y_engine.features.remediation.services.effort import estimate_effort, estimate_impact, is_quick_win

logger = logging.getLogger(__name__)

MIN_DURATION_YEARS = 1
MAX_DURATION_YEARS = 5
MIN_ITEMS_PER_QUARTER = 2
MAX_ITEMS_PER_QUARTER = 8

# Percentage points gained per year of remediation
TARGET_RATE_GAIN_PER_YEAR = 50

UNSCHEDULED_REASON = "Past the end of the plan ({end_year} Q4); would have been scheduled {year} Q{quarter}"


def items_per_quarter(total_items: int, total_quarters: int) -> int:
    if total_quarters <= 0:
        return MIN_ITEMS_PER_QUARTER
    needed = math.ceil(total_items / total_quarters)
    return max(MIN_ITEMS_PER_QUARTER, min(MAX_ITEMS_PER_QUARTER, needed))


def target_rate(current_rate: Optional[float], duration_years: int) -> float:
    return min(100.0, (current_rate or 0.0) + TARGET_RATE_GAIN_PER_YEAR * duration_years)


def acceptance_criteria(group: IssueGroup, criteria: List[str]) -> str:
    scope_count = group.affected_scope_count
    checked = ", ".join(criteria) if criteria else "the related criteria"
    return (
        f"All {group.occurrence_count} occurrence(s) of '{group.error_type}' are fixed on "
        f"{scope_count} page(s), and a new audit reports no violation of {checked}."
    )


def _criteria(group: IssueGroup) -> List[str]:
    return [ref for ref in (group.primary_criterion, group.secondary_criterion) if ref]


class RemediationScheduler:
    """
    Turns a campaign's issue groups into a dated, quarter-bucketed plan.

    Quick wins come first, then the regular backlog, each stable-sorted by
    descending priority score. A cursor walks quarters from ``now`` and moves on
    once the per-quarter capacity is reached. Items that would land after the
    last year of the plan go to ``plan.unscheduled``.
    """

    @staticmethod
    def order_groups(groups: Iterable[IssueGroup]) -> List[Tuple[IssueGroup, bool]]:
        """Score, classify and order groups. Returns (group, is_quick_win) pairs in schedule order."""
        quick_wins: List[IssueGroup] = []
        regular: List[IssueGroup] = []
        for group in groups:
            group.priority_score = PriorityScorer.score_group(group)
            group.complexity = complexity(group.error_type, group.recommendation)
            if is_quick_win(group.severity, group.complexity, group.occurrence_count):
                quick_wins.append(group)
            else:
                regular.append(group)

        quick_wins.sort(key=lambda g: -g.priority_score)
        regular.sort(key=lambda g: -g.priority_score)
        return [(g, True) for g in quick_wins] + [(g, False) for g in regular]

    @staticmethod
    def build_item(group: IssueGroup, year: int, quarter: int, rank: int, quick_win: bool) -> RemediationItem:
        criteria = _criteria(group)
        return RemediationItem(
            title=group.error_type,
            description=group.description,
            severity=group.severity.value,
            category=ActionCategory(category(group.error_type, group.description, group.recommendation)),
            year=year,
            quarter=quarter,
            priority_rank=rank,
            priority_score=group.priority_score,
            is_quick_win=quick_win,
            estimated_effort_hours=estimate_effort(
                group.severity, group.complexity, group.occurrence_count, group.affected_scope_count
            ),
            impact_score=estimate_impact(group.severity, group.affected_scope_count),
            occurrence_count=group.occurrence_count,
            affected_scope_count=group.affected_scope_count,
            affected_scopes=list(group.affected_scopes),
            criteria=criteria,
            technical_details=group.recommendation,
            acceptance_criteria=acceptance_criteria(group, criteria),
        )

    @staticmethod
    def build_plan(
        groups: Iterable[IssueGroup],
        duration_years: int,
        now: Tuple[int, int],
        current_rate: Optional[float] = None,
        campaign_id: Optional[str] = None,
    ) -> RemediationPlan:
        if not MIN_DURATION_YEARS <= duration_years <= MAX_DURATION_YEARS:
            raise ValueError(
                f"duration_years must be between {MIN_DURATION_YEARS} and {MAX_DURATION_YEARS}, "
                f"got {duration_years}"
            )
        start_year, start_quarter = now
        if not 1 <= start_quarter <= 4:
            raise ValueError(f"quarter must be between 1 and 4, got {start_quarter}")

        ordered = RemediationScheduler.order_groups(groups)
        total_quarters = (duration_years + 1) * 4
        capacity = items_per_quarter(len(ordered), total_quarters)
        end_year = start_year + duration_years

        items: List[RemediationItem] = []
        unscheduled: List[UnscheduledItem] = []
        year, quarter, placed = start_year, start_quarter, 0

        for rank, (group, quick_win) in enumerate(ordered, start=1):
            item = RemediationScheduler.build_item(group, year, quarter, rank, quick_win)
            if year > end_year:
                unscheduled.append(
                    UnscheduledItem(
                        item=item,
                        reason=UNSCHEDULED_REASON.format(end_year=end_year, year=year, quarter=quarter),
                    )
                )
            else:
                items.append(item)

            placed += 1
            if placed == capacity:
                placed = 0
                quarter += 1
                if quarter > 4:
                    quarter = 1
                    year += 1

        if unscheduled:
            logger.warning(
                f"{len(unscheduled)} remediation items do not fit before the end of {end_year} "
                f"and were left unscheduled"
            )

        plan = RemediationPlan(
            campaign_id=campaign_id,
            duration_years=duration_years,
            start_year=start_year,
            start_quarter=start_quarter,
            total_quarters=total_quarters,
            items_per_quarter=capacity,
            current_rate=current_rate,
            target_rate=target_rate(current_rate, duration_years),
            items=items,
            annual_plans=RemediationScheduler.annual_plans(items, start_year, end_year),
            unscheduled=unscheduled,
        )
        logger.info(
            f"Remediation plan: {len(items)} items over {start_year}-{end_year}, "
            f"{capacity} per quarter, {len(plan.quick_wins)} quick wins"
        )
        return plan

    @staticmethod
    def annual_plans(items: List[RemediationItem], start_year: int, end_year: int) -> List[AnnualPlan]:
        buckets: Dict[Tuple[int, int], List[RemediationItem]] = {}
        for item in items:
            buckets.setdefault((item.year, item.quarter), []).append(item)

        plans = []
        for year in range(start_year, end_year + 1):
            quarters = []
            for quarter in range(1, 5):
                quarter_items = buckets.get((year, quarter), [])
                quarters.append(
                    QuarterPlan(
                        quarter=quarter,
                        items=quarter_items,
                        effort_hours=sum(i.estimated_effort_hours for i in quarter_items),
                    )
                )
            year_items = [item for q in quarters for item in q.items]
            severity_counts = {severity.value: 0 for severity in IssueSeverity}
            for item in year_items:
                severity_counts[item.severity] = severity_counts.get(item.severity, 0) + 1
            plans.append(
                AnnualPlan(
                    year=year,
                    quarters=quarters,
                    total_items=len(year_items),
                    total_effort_hours=sum(q.effort_hours for q in quarters),
                    severity_counts=severity_counts,
                    quick_win_count=sum(1 for item in year_items if item.is_quick_win),
                )
            )
        return plans
