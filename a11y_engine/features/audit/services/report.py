from typing import Optional

from a11y_engine.features.audit.schemas.issue import IssueGroup, IssueGroupSummary
from a11y_engine.features.audit.schemas.scan import Scan, ScanResponse
from a11y_engine.features.audit.services.priority import (
    priority_label,
    priority_statistics,
    priority_tier,
    top_priority_groups,
)
from a11y_engine.features.taxonomy.services.reference import TaxonomyReference, get_taxonomy


def group_summary(group: IssueGroup, reference: Optional[TaxonomyReference] = None) -> IssueGroupSummary:
    reference = reference or get_taxonomy()
    criterion = group.primary_criterion or ""
    return IssueGroupSummary(
        source=group.source.value,
        error_type=group.error_type,
        severity=group.severity.value,
        occurrence_count=group.occurrence_count,
        affected_scope_count=group.affected_scope_count,
        criterion=group.criterion_key,
        criterion_title=reference.criterion_title(criterion),
        secondary_criterion=group.secondary_criterion,
        topic=group.topic,
        topic_name=reference.get_topic(group.topic).name,
        auto_testable=reference.is_auto_testable(criterion),
        uncategorized=group.is_uncategorized,
        priority_score=group.priority_score,
        priority_tier=priority_tier(group.priority_score),
        priority_label=priority_label(group.priority_score),
        complexity=group.complexity.value,
        recommendation=group.recommendation,
        code_fix=group.code_fix,
        impact_description=group.impact_description,
        enrichment_status=group.enrichment_status.value,
        sample_selector=group.first_occurrence.selector,
    )


def scan_response(scan: Scan) -> ScanResponse:
    reference = get_taxonomy()
    return ScanResponse(
        id=scan.id,
        url=scan.url,
        campaign_id=scan.campaign_id,
        status=scan.status.value,
        stage=scan.stage.value if scan.stage else None,
        error_message=scan.error_message,
        total_issues=len(scan.issues),
        severity_counts=scan.severity_counts,
        conformity_rate=scan.conformity_rate,
        conformity=scan.conformity,
        non_applicable_criteria=scan.non_applicable_criteria,
        priority_statistics=priority_statistics(scan.groups),
        groups=[group_summary(group, reference) for group in scan.groups],
        top_priorities=[group_summary(group, reference) for group in top_priority_groups(scan.groups)],
    )
