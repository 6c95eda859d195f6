"""
Issue Schemas

Canonical records produced from raw checker findings: one ``Issue`` per
detection and one ``IssueGroup`` per (source, normalized error type) in a scope.
"""
import enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from a11y_engine.features.taxonomy.schemas.taxonomy import UNCATEGORIZED_LABEL


class IssueSource(str, enum.Enum):
    """Checker that produced a finding"""
    scanner = "scanner"
    rule_linter = "rule-linter"
    static_analyzer = "static-analyzer"
    ai_visual = "ai-visual"
    ai_contextual = "ai-contextual"


class IssueSeverity(str, enum.Enum):
    """Issue severity levels"""
    critical = "critical"
    major = "major"
    minor = "minor"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    IssueSeverity.critical: 3,
    IssueSeverity.major: 2,
    IssueSeverity.minor: 1,
}


class Complexity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class EnrichmentStatus(str, enum.Enum):
    pending = "pending"
    enriched = "enriched"
    fallback = "fallback"


class Issue(BaseModel):
    """
    One concrete detection instance.

    ``scope`` identifies where the detection was made (the page URL) and is what
    ``IssueGroup.affected_scopes`` deduplicates on.
    """
    error_type: str
    source: IssueSource
    severity: IssueSeverity
    selector: str = ""
    context: Optional[str] = None
    primary_criterion: Optional[str] = None
    secondary_criterion: Optional[str] = None
    description: str = ""
    scope: Optional[str] = None
    # Set when the checker itself already suggests a fix (AI analyzers do).
    recommendation: Optional[str] = None
    code_fix: Optional[str] = None
    impact_description: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "error_type": "Missing alt #12",
                "source": "scanner",
                "severity": "critical",
                "selector": "img.hero",
                "context": "<img class=\"hero\" src=\"/hero.png\">",
                "primary_criterion": "1.1",
                "secondary_criterion": "1.1.1",
                "description": "Image has no text alternative",
                "scope": "https://example.com/",
            }
        },
    )


class IssueGroup(BaseModel):
    """
    Unit of classification, scoring and enrichment.

    Key is (source, normalized_error_type). ``occurrences`` is never empty and
    keeps insertion order so the first occurrence is a stable sample.
    """
    source: IssueSource
    normalized_error_type: str
    error_type: str
    severity: IssueSeverity
    occurrences: List[Issue] = Field(min_length=1)
    affected_scopes: List[str] = Field(default_factory=list)

    recommendation: Optional[str] = None
    code_fix: Optional[str] = None
    impact_description: Optional[str] = None

    primary_criterion: Optional[str] = None
    secondary_criterion: Optional[str] = None
    topic: int = 0

    priority_score: int = 0
    complexity: Complexity = Complexity.medium
    enrichment_status: EnrichmentStatus = EnrichmentStatus.pending
    fingerprint: Optional[str] = None

    @property
    def key(self):
        return (self.source.value, self.normalized_error_type)

    @property
    def occurrence_count(self) -> int:
        return len(self.occurrences)

    @property
    def affected_scope_count(self) -> int:
        return len(self.affected_scopes)

    @property
    def first_occurrence(self) -> Issue:
        return self.occurrences[0]

    @property
    def description(self) -> str:
        return self.first_occurrence.description

    @property
    def criterion_key(self) -> str:
        if self.primary_criterion:
            return self.primary_criterion
        if self.secondary_criterion:
            return f"WCAG:{self.secondary_criterion}"
        return UNCATEGORIZED_LABEL

    @property
    def is_uncategorized(self) -> bool:
        return not self.primary_criterion and self.topic == 0


class IssueGroupSummary(BaseModel):
    """Flat view of an IssueGroup for API responses."""
    source: str
    error_type: str
    severity: str
    occurrence_count: int
    affected_scope_count: int
    criterion: str
    criterion_title: str = ""
    secondary_criterion: Optional[str] = None
    topic: int
    priority_score: int
    priority_tier: str
    topic_name: str = ""
    auto_testable: bool = False
    uncategorized: bool = False
    priority_label: str = ""
    complexity: str
    recommendation: Optional[str] = None
    code_fix: Optional[str] = None
    impact_description: Optional[str] = None
    enrichment_status: str
    sample_selector: str = ""

    model_config = ConfigDict(from_attributes=True)
