import math
import re
from typing import Dict, Iterable, List, Optional, Tuple

from a11y_engine.features.audit.schemas.issue import IssueGroup
from a11y_engine.features.audit.services.heuristics import matched_terms
from a11y_engine.features.taxonomy.services.classifier import extract_secondary

SEVERITY_SCORES = {"critical": 40, "major": 25, "minor": 10}

IMPACT_DEFAULT = 10
# Checked in order; the first tier with a matching term wins.
IMPACT_TIERS: List[Tuple[int, Tuple[str, ...]]] = [
    (20, (
        "impossible", "block", "prevent", "inaccessible", "cannot", "can't", "unable",
        "bloqu", "empêche", "ne peut pas",
    )),
    (15, (
        "difficult", "hard to", "complicate", "hinder", "confusing", "loss",
        "difficile", "complique", "gêne", "perte",
    )),
    (5, (
        "minimal", "slight", "low impact", "little",
        "minime", "léger", "faible", "peu d'impact",
    )),
]

LEVEL_SCORES = {"A": 10, "AA": 7, "AAA": 4}
LEVEL_UNKNOWN = 5

LEVEL_PATTERNS = [
    re.compile(r"\((A{1,3})\)", re.IGNORECASE),
    re.compile(r"\blevel\s+(A{1,3})\b", re.IGNORECASE),
    re.compile(r"\bwcag2\d?(A{1,3})\b", re.IGNORECASE),
]

WCAG_LEVELS: Dict[str, str] = {}
for _level, _criteria in {
    "A": (
        "1.1.1 1.2.1 1.2.2 1.2.3 1.3.1 1.3.2 1.3.3 1.4.1 1.4.2 2.1.1 2.1.2 2.1.4 2.2.1 2.2.2 "
        "2.3.1 2.4.1 2.4.2 2.4.3 2.4.4 2.5.1 2.5.2 2.5.3 2.5.4 3.1.1 3.2.1 3.2.2 3.3.1 3.3.2 "
        "4.1.1 4.1.2"
    ),
    "AA": (
        "1.2.4 1.2.5 1.3.4 1.3.5 1.4.3 1.4.4 1.4.5 1.4.10 1.4.11 1.4.12 1.4.13 2.4.5 2.4.6 "
        "2.4.7 3.1.2 3.2.3 3.2.4 3.3.3 3.3.4 4.1.3"
    ),
    "AAA": (
        "1.2.6 1.2.7 1.2.8 1.2.9 1.3.6 1.4.6 1.4.7 1.4.8 1.4.9 2.1.3 2.2.3 2.2.4 2.2.5 2.2.6 "
        "2.3.2 2.3.3 2.4.8 2.4.9 2.4.10 2.5.5 2.5.6 3.1.3 3.1.4 3.1.5 3.1.6 3.2.5 3.3.5 3.3.6"
    ),
}.items():
    for _number in _criteria.split():
        WCAG_LEVELS[_number] = _level

PRIORITY_TIERS = [
    (80, "P1", "Very urgent"),
    (60, "P2", "Urgent"),
    (40, "P3", "Important"),
    (0, "P4", "Improvement"),
]


class PriorityScorer:
    """
    Deterministic priority score for issue groups.

    score = severity + occurrences + impact + standard level, truncated to an
    integer and clamped to [0, 100]. Nothing here raises on odd input.
    """

    @staticmethod
    def severity_score(severity) -> int:
        value = getattr(severity, "value", severity)
        return SEVERITY_SCORES.get(str(value or "").lower(), 0)

    @staticmethod
    def occurrence_score(count: int) -> float:
        if count <= 0:
            return 0
        return min(30, 10 + 10 * math.log10(count))

    @staticmethod
    def impact_score(impact_description: Optional[str]) -> int:
        if not impact_description:
            return IMPACT_DEFAULT

        for score, terms in IMPACT_TIERS:
            if matched_terms(impact_description, terms):
                return score
        return IMPACT_DEFAULT

    @staticmethod
    def standard_level(*references: Optional[str]) -> Optional[str]:
        """
        Conformance level for the given secondary references.

        Explicit annotations ("(AA)", "Level A", "wcag2aa") come first; otherwise
        the first dotted reference is looked up in the WCAG 2.1 level table.
        """
        text = " ".join(ref for ref in references if ref)
        if not text:
            return None

        earliest = None
        for pattern in LEVEL_PATTERNS:
            match = pattern.search(text)
            if match and (earliest is None or match.start() < earliest.start()):
                earliest = match
        if earliest:
            return earliest.group(1).upper()

        return WCAG_LEVELS.get(extract_secondary(text) or "")

    @staticmethod
    def level_score(*references: Optional[str]) -> int:
        return LEVEL_SCORES.get(PriorityScorer.standard_level(*references), LEVEL_UNKNOWN)

    @staticmethod
    def score(
        severity,
        occurrences: int,
        impact_description: Optional[str] = None,
        *level_references: Optional[str],
    ) -> int:
        total = (
            PriorityScorer.severity_score(severity)
            + PriorityScorer.occurrence_score(occurrences)
            + PriorityScorer.impact_score(impact_description)
            + PriorityScorer.level_score(*level_references)
        )
        return min(100, max(0, int(total)))

    @staticmethod
    def score_group(group: IssueGroup) -> int:
        return PriorityScorer.score(
            group.severity,
            group.occurrence_count,
            group.impact_description,
            group.first_occurrence.secondary_criterion,
            group.secondary_criterion,
        )

    @staticmethod
    def score_groups(groups: Iterable[IssueGroup]) -> List[IssueGroup]:
        """Set priority_score on every group; returns them stable-sorted by descending score."""
        groups = list(groups)
        for group in groups:
            group.priority_score = PriorityScorer.score_group(group)
        return sorted(groups, key=lambda g: -g.priority_score)


def priority_tier(score: int) -> str:
    for threshold, tier, _label in PRIORITY_TIERS:
        if score >= threshold:
            return tier
    return PRIORITY_TIERS[-1][1]


def priority_label(score: int) -> str:
    for threshold, _tier, label in PRIORITY_TIERS:
        if score >= threshold:
            return label
    return PRIORITY_TIERS[-1][2]


def top_priority_groups(groups: Iterable[IssueGroup], limit: int = 5) -> List[IssueGroup]:
    return sorted(groups, key=lambda g: -g.priority_score)[:limit]


def priority_statistics(groups: Iterable[IssueGroup]) -> Dict[str, int]:
    stats = {tier: 0 for _threshold, tier, _label in PRIORITY_TIERS}
    for group in groups:
        stats[priority_tier(group.priority_score)] += 1
    return stats
