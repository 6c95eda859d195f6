import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from a11y_engine.features.taxonomy.schemas.taxonomy import (
    UNCATEGORIZED_LABEL,
    UNCATEGORIZED_TOPIC,
    Criterion,
    TaxonomyCounts,
    Topic,
)
from a11y_engine.platform.config import settings
from a11y_engine.platform.exceptions import TaxonomyLoadError

logger = logging.getLogger(__name__)


class TaxonomyReference:
    """
    Read-only view over the accessibility standard reference document.

    The document is a JSON object with ``topics[]``, each topic carrying
    ``number``, ``name`` and ``criteria[]``; each criterion carries ``number``,
    ``title``, ``autoTestable`` and ``tests[]``. Extra keys are ignored, so the
    file can evolve as long as that shape is kept.
    """

    def __init__(self, topics: List[Topic], version: Optional[str] = None):
        self.version = version
        self._topics: Dict[int, Topic] = {topic.number: topic for topic in topics}
        self._criteria: Dict[str, Criterion] = {}
        for topic in topics:
            for criterion in topic.criteria:
                self._criteria[criterion.number] = criterion

    @classmethod
    def from_dict(cls, document: dict) -> "TaxonomyReference":
        if not isinstance(document, dict) or not isinstance(document.get("topics"), list):
            raise TaxonomyLoadError("Taxonomy document must contain a 'topics' list")

        topics = []
        try:
            for raw_topic in document["topics"]:
                topic_number = int(raw_topic["number"])
                criteria = [
                    Criterion.model_validate({**raw_criterion, "topic_number": topic_number})
                    for raw_criterion in raw_topic.get("criteria", [])
                ]
                topics.append(Topic(number=topic_number, name=raw_topic["name"], criteria=criteria))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise TaxonomyLoadError(f"Malformed taxonomy document: {e}") from e

        return cls(topics, version=document.get("version"))

    @classmethod
    def from_file(cls, path: str) -> "TaxonomyReference":
        file_path = Path(path)
        if not file_path.is_file():
            raise TaxonomyLoadError(f"Taxonomy file not found: {path}")

        try:
            with file_path.open(encoding="utf-8") as fh:
                document = json.load(fh)
        except json.JSONDecodeError as e:
            raise TaxonomyLoadError(f"Taxonomy file is not valid JSON: {e}") from e

        reference = cls.from_dict(document)
        counts = reference.counts()
        logger.info(
            f"Loaded taxonomy {reference.version or 'unversioned'} from {path}: "
            f"{counts.topics} topics, {counts.criteria} criteria, {counts.tests} tests"
        )
        return reference

    def all_topics(self) -> List[Topic]:
        return [self._topics[number] for number in sorted(self._topics)]

    def all_criteria(self) -> List[Criterion]:
        return [criterion for topic in self.all_topics() for criterion in topic.criteria]

    def get_criterion(self, number: str) -> Optional[Criterion]:
        return self._criteria.get(number)

    def get_topic(self, number: int) -> Topic:
        """Return the topic, or the synthetic topic 0 when the number is unknown."""
        topic = self._topics.get(number)
        if topic is None:
            return Topic(number=UNCATEGORIZED_TOPIC, name=UNCATEGORIZED_LABEL, criteria=[])
        return topic

    def has_topic(self, number: int) -> bool:
        return number in self._topics

    def auto_testable_criteria(self) -> List[Criterion]:
        return [c for c in self.all_criteria() if c.auto_testable]

    def manual_only_criteria(self) -> List[Criterion]:
        return [c for c in self.all_criteria() if not c.auto_testable]

    def is_auto_testable(self, number: str) -> bool:
        criterion = self._criteria.get(number)
        return bool(criterion and criterion.auto_testable)

    def criterion_title(self, number: str) -> str:
        criterion = self._criteria.get(number)
        return criterion.title if criterion else ""

    def counts(self) -> TaxonomyCounts:
        criteria = self.all_criteria()
        return TaxonomyCounts(
            topics=len(self._topics),
            criteria=len(criteria),
            tests=sum(len(c.tests) for c in criteria),
            auto_testable=sum(1 for c in criteria if c.auto_testable),
        )


_reference: Optional[TaxonomyReference] = None
_reference_lock = threading.Lock()


def get_taxonomy() -> TaxonomyReference:
    """Load the configured taxonomy once per process."""
    global _reference

    if _reference is None:
        with _reference_lock:
            if _reference is None:
                _reference = TaxonomyReference.from_file(settings.TAXONOMY_PATH)
    return _reference
