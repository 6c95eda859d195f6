import logging
from typing import Dict

from a11y_engine.features.audit.schemas.issue import IssueGroup
from a11y_engine.features.audit.schemas.scan import Scan, ScanComparison

logger = logging.getLogger(__name__)


def _groups_by_key(scan: Scan) -> Dict[tuple, IssueGroup]:
    return {group.key: group for group in scan.groups}


def _non_conforming(scan: Scan):
    return scan.conformity.non_conforming_criteria if scan.conformity else []


class ScanComparator:
    """
    Progress between two audits of the same page.

    Every difference is ``current - baseline``: a positive conformity
    difference is an improvement, a negative severity difference means fewer
    issues of that severity.
    """

    @staticmethod
    def compare(baseline: Scan, current: Scan) -> ScanComparison:
        conformity_difference = None
        if baseline.conformity_rate is not None and current.conformity_rate is not None:
            conformity_difference = round(current.conformity_rate - baseline.conformity_rate, 2)

        baseline_counts = baseline.severity_counts
        current_counts = current.severity_counts
        severity_differences = {
            severity: current_counts.get(severity, 0) - baseline_counts.get(severity, 0)
            for severity in baseline_counts
        }

        before_criteria = _non_conforming(baseline)
        after_criteria = _non_conforming(current)
        before_groups = _groups_by_key(baseline)
        after_groups = _groups_by_key(current)

        comparison = ScanComparison(
            baseline_id=baseline.id,
            current_id=current.id,
            baseline_rate=baseline.conformity_rate,
            current_rate=current.conformity_rate,
            conformity_difference=conformity_difference,
            severity_differences=severity_differences,
            total_difference=len(current.issues) - len(baseline.issues),
            resolved_criteria=[c for c in before_criteria if c not in after_criteria],
            new_criteria=[c for c in after_criteria if c not in before_criteria],
            resolved_error_types=[g.error_type for k, g in before_groups.items() if k not in after_groups],
            new_error_types=[g.error_type for k, g in after_groups.items() if k not in before_groups],
        )
        logger.info(
            f"Compared scan {current.id} with baseline {baseline.id}: "
            f"conformity difference {conformity_difference}, {comparison.total_difference:+d} issues"
        )
        return comparison
