import logging
from typing import Iterable, List, Optional, Set

from a11y_engine.features.audit.schemas.issue import IssueGroup
from a11y_engine.features.audit.schemas.scan import ConformityResult
from a11y_engine.features.taxonomy.services.classifier import normalize_criterion
from a11y_engine.features.taxonomy.services.reference import TaxonomyReference, get_taxonomy

logger = logging.getLogger(__name__)


class ConformityCalculator:
    """
    Conformity rate over the auto-testable criteria of the reference.

    Applicable criteria are the auto-testable ones minus the not-applicable set.
    One group mapped to an applicable criterion makes it non-conforming. With no
    applicable criterion the rate is None.
    """

    def __init__(self, reference: Optional[TaxonomyReference] = None):
        self.reference = reference or get_taxonomy()

    def applicable_criteria(self, not_applicable: Set[str]) -> List[str]:
        return [
            criterion.number
            for criterion in self.reference.auto_testable_criteria()
            if criterion.number not in not_applicable
        ]

    def not_tested_criteria(self, not_applicable: Set[str]) -> List[str]:
        return [
            criterion.number
            for criterion in self.reference.manual_only_criteria()
            if criterion.number not in not_applicable
        ]

    def calculate(self, groups: Iterable[IssueGroup], not_applicable: Iterable[str]) -> ConformityResult:
        not_applicable = set(not_applicable)
        applicable = self.applicable_criteria(not_applicable)
        applicable_set = set(applicable)

        failing = set()
        for group in groups:
            criterion = normalize_criterion(group.primary_criterion)
            if criterion in applicable_set:
                failing.add(criterion)

        result = self.build_result([number for number in applicable if number in failing], not_applicable)
        logger.info(
            f"Conformity: {result.conforming_count}/{result.applicable_count} applicable criteria conform "
            f"(rate={result.rate}), {len(result.not_tested_criteria)} left to manual review"
        )
        return result

    def build_result(self, non_conforming: Iterable[str], not_applicable: Iterable[str]) -> ConformityResult:
        """Full result from the non-conforming and not-applicable criteria alone."""
        not_applicable = set(not_applicable)
        applicable = self.applicable_criteria(not_applicable)
        failing = set(non_conforming)

        non_conforming = [number for number in applicable if number in failing]
        conforming = [number for number in applicable if number not in failing]

        rate = None
        if applicable:
            rate = round(len(conforming) / len(applicable) * 100, 2)

        return ConformityResult(
            applicable_count=len(applicable),
            conforming_count=len(conforming),
            non_conforming_count=len(non_conforming),
            not_applicable_count=len(not_applicable),
            rate=rate,
            non_conforming_criteria=non_conforming,
            tested_criteria=applicable,
            conforming_criteria=conforming,
            not_tested_criteria=self.not_tested_criteria(not_applicable),
        )
