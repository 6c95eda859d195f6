import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from a11y_engine.features.audit.schemas.issue import EnrichmentStatus, Issue, IssueGroup
from a11y_engine.features.audit.services.normalizer import normalize_error_type
from a11y_engine.features.taxonomy.services.classifier import normalize_criterion

logger = logging.getLogger(__name__)

GroupKey = Tuple[str, str]

ENRICHED_FIELDS = ("recommendation", "code_fix", "impact_description")


def group_key(issue: Issue) -> GroupKey:
    return (issue.source.value, normalize_error_type(issue.error_type))


def _most_common(values: Iterable[Optional[str]]) -> Optional[str]:
    """Most frequent non-empty value; ties go to the smallest in sort order."""
    counts = Counter(value for value in values if value)
    if not counts:
        return None
    return min(counts, key=lambda value: (-counts[value], value))


def _merge_scopes(target: List[str], scopes: Iterable[Optional[str]]) -> None:
    seen = set(target)
    for scope in scopes:
        if scope and scope not in seen:
            seen.add(scope)
            target.append(scope)


class GroupingEngine:
    """
    Collapses issues sharing (source, normalized error type) into IssueGroups.

    The resulting key set, counts, scopes, severities, labels and criteria do
    not depend on input order. Labels and criteria take the most frequent
    value. Occurrences keep the order they were given in.
    """

    @staticmethod
    def group_issues(issues: Iterable[Issue]) -> List[IssueGroup]:
        buckets: Dict[GroupKey, List[Issue]] = {}
        for issue in issues:
            buckets.setdefault(group_key(issue), []).append(issue)

        groups = [GroupingEngine._build_group(key, occurrences) for key, occurrences in buckets.items()]
        logger.debug(f"Grouped {sum(len(o) for o in buckets.values())} issues into {len(groups)} groups")
        return groups

    @staticmethod
    def _build_group(key: GroupKey, occurrences: List[Issue]) -> IssueGroup:
        scopes: List[str] = []
        _merge_scopes(scopes, (issue.scope for issue in occurrences))

        first = occurrences[0]
        group = IssueGroup(
            source=first.source,
            normalized_error_type=key[1],
            error_type=_most_common(issue.error_type for issue in occurrences) or first.error_type,
            severity=max((issue.severity for issue in occurrences), key=lambda s: s.rank),
            occurrences=list(occurrences),
            affected_scopes=scopes,
            primary_criterion=_most_common(issue.primary_criterion for issue in occurrences),
            secondary_criterion=_most_common(issue.secondary_criterion for issue in occurrences),
        )
        for field in ENRICHED_FIELDS:
            setattr(group, field, _most_common(getattr(issue, field) for issue in occurrences))
        if group.recommendation:
            group.enrichment_status = EnrichmentStatus.enriched
        return group

    @staticmethod
    def merge_campaign_groups(per_scan_groups: Iterable[Iterable[IssueGroup]]) -> List[IssueGroup]:
        """
        Merge the groups of several scans into campaign-wide groups.

        Primary criteria are cut to two levels first so "1.1.1" from one scan and
        "1.1" from another count as the same defect class. Enrichment values are
        taken from the first group that has them.
        """
        merged: Dict[GroupKey, IssueGroup] = {}

        for groups in per_scan_groups:
            for group in groups:
                criterion = normalize_criterion(group.primary_criterion) or group.primary_criterion
                existing = merged.get(group.key)

                if existing is None:
                    merged[group.key] = group.model_copy(update={
                        "occurrences": list(group.occurrences),
                        "affected_scopes": list(group.affected_scopes),
                        "primary_criterion": criterion,
                    })
                    continue

                existing.occurrences.extend(group.occurrences)
                _merge_scopes(existing.affected_scopes, group.affected_scopes)
                if group.severity.rank > existing.severity.rank:
                    existing.severity = group.severity
                if not existing.primary_criterion and criterion:
                    existing.primary_criterion = criterion
                if not existing.secondary_criterion and group.secondary_criterion:
                    existing.secondary_criterion = group.secondary_criterion
                if not existing.topic and group.topic:
                    existing.topic = group.topic
                for field in ENRICHED_FIELDS:
                    if not getattr(existing, field) and getattr(group, field):
                        setattr(existing, field, getattr(group, field))
                if existing.enrichment_status != EnrichmentStatus.enriched:
                    if group.enrichment_status == EnrichmentStatus.enriched:
                        existing.enrichment_status = EnrichmentStatus.enriched
                    elif group.enrichment_status == EnrichmentStatus.fallback:
                        existing.enrichment_status = EnrichmentStatus.fallback
                if not existing.fingerprint:
                    existing.fingerprint = group.fingerprint

        logger.info(f"Merged campaign issues into {len(merged)} groups")
        return list(merged.values())
