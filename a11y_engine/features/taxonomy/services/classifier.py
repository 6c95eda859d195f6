import re
from typing import Dict, Optional, Tuple

from a11y_engine.features.taxonomy.schemas.taxonomy import UNCATEGORIZED_TOPIC, Classification
from a11y_engine.features.taxonomy.services.reference import TaxonomyReference, get_taxonomy

PRIMARY_PATTERN = re.compile(r"^\s*(\d+)\.(\d+)")
SECONDARY_PATTERN = re.compile(r"(\d+(?:\.\d+)+)")

# WCAG success-criterion prefixes -> RGAA topic. Matched per dotted segment,
# so "1.4.1" never claims "1.4.10".
SECONDARY_TOPIC_TABLE: Dict[Tuple[str, ...], int] = {
    ("1", "1"): 1,
    ("1", "2"): 4,
    ("1", "3"): 9,
    ("1", "4"): 10,
    ("1", "4", "1"): 3,
    ("1", "4", "3"): 3,
    ("1", "4", "6"): 3,
    ("1", "4", "11"): 3,
    ("2", "1"): 12,
    ("2", "2"): 13,
    ("2", "3"): 13,
    ("2", "4"): 12,
    ("2", "5"): 12,
    ("3", "1"): 8,
    ("3", "2"): 7,
    ("3", "3"): 11,
    ("4", "1"): 8,
    ("4", "1", "2"): 7,
    ("4", "1", "3"): 7,
}


def normalize_criterion(value: Optional[str]) -> Optional[str]:
    """
    Reduce a primary criterion reference to two numeric levels.

    "1.1.1" -> "1.1", "6.1, 9.1" -> "6.1". Anything without a leading
    "<n>.<n>" gives None.
    """
    if not value:
        return None
    first = str(value).split(",")[0]
    match = PRIMARY_PATTERN.match(first)
    if not match:
        return None
    return f"{int(match.group(1))}.{int(match.group(2))}"


def extract_secondary(value: Optional[str]) -> Optional[str]:
    """Pull the first dotted reference out of "WCAG 1.4.3 (AA)" style strings."""
    if not value:
        return None
    match = SECONDARY_PATTERN.search(str(value))
    return match.group(1) if match else None


def topic_for_secondary(secondary: Optional[str]) -> int:
    """Longest segment-prefix lookup in the secondary table, 0 when nothing matches."""
    reference = extract_secondary(secondary)
    if not reference:
        return UNCATEGORIZED_TOPIC

    segments = tuple(reference.split("."))
    for length in range(len(segments), 0, -1):
        topic = SECONDARY_TOPIC_TABLE.get(segments[:length])
        if topic is not None:
            return topic
    return UNCATEGORIZED_TOPIC


class TaxonomyClassifier:
    """
    Resolves issues to a (topic, criterion) pair.

    Resolution order: the primary criterion when it reads as "<topic>.<n>" with a
    topic known to the reference, else the secondary-standard prefix table, else
    topic 0. Never raises.
    """

    def __init__(self, reference: Optional[TaxonomyReference] = None):
        self.reference = reference or get_taxonomy()

    def classify(
        self,
        primary_criterion: Optional[str] = None,
        secondary_criterion: Optional[str] = None,
    ) -> Classification:
        secondary = extract_secondary(secondary_criterion)

        criterion = normalize_criterion(primary_criterion)
        if criterion:
            topic = int(criterion.split(".")[0])
            if self.reference.has_topic(topic):
                return Classification(topic=topic, criterion=criterion, secondary=secondary)

        if secondary:
            return Classification(topic=topic_for_secondary(secondary), secondary=secondary)

        return Classification()

    def classify_issue(self, issue) -> Classification:
        """Classify anything exposing primary_criterion / secondary_criterion."""
        return self.classify(
            getattr(issue, "primary_criterion", None),
            getattr(issue, "secondary_criterion", None),
        )
