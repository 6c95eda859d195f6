"""
Taxonomy Schemas

Reference-data models for the accessibility standard (Topics -> Criteria -> Tests)
and the output of the classifier.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

UNCATEGORIZED_TOPIC = 0
UNCATEGORIZED_LABEL = "uncategorized"


class CriterionTest(BaseModel):
    """One numbered test of a criterion (e.g. "1.1.1")."""
    number: str
    description: str = ""

    model_config = ConfigDict(frozen=True)


class Criterion(BaseModel):
    """A single numbered rule of the standard."""
    number: str
    title: str
    topic_number: int
    auto_testable: bool = Field(default=False, alias="autoTestable")
    tests: List[CriterionTest] = Field(default_factory=list)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "number": "1.1",
                "title": "Does each information-conveying image have a text alternative?",
                "topic_number": 1,
                "autoTestable": True,
                "tests": [{"number": "1.1.1", "description": "Each img element has an alt attribute."}],
            }
        },
    )


class Topic(BaseModel):
    number: int
    name: str
    criteria: List[Criterion] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class TaxonomyCounts(BaseModel):
    topics: int
    criteria: int
    tests: int
    auto_testable: int


class Classification(BaseModel):
    """
    Result of resolving an issue against the taxonomy.

    topic is 0 when nothing could be resolved; criterion is the two-level
    primary number ("1.1") and secondary the raw secondary-standard reference.
    """
    topic: int = UNCATEGORIZED_TOPIC
    criterion: Optional[str] = None
    secondary: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_uncategorized(self) -> bool:
        return self.topic == UNCATEGORIZED_TOPIC and self.criterion is None

    @property
    def criterion_key(self) -> str:
        if self.criterion:
            return self.criterion
        if self.secondary:
            return f"WCAG:{self.secondary}"
        return UNCATEGORIZED_LABEL
