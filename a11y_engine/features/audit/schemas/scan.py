"""
Scan Schemas

Per-page audit state, pipeline results and request models for the scan
endpoints.
"""
import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from uuid_extension import uuid7

from a11y_engine.features.audit.schemas.issue import Issue, IssueGroup, IssueGroupSummary, IssueSeverity
from a11y_engine.platform.exceptions import InvalidStatusTransition


class ScanStatus(str, enum.Enum):
    """Scan lifecycle states"""
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class PipelineStage(str, enum.Enum):
    """Steps of the per-scan pipeline, in execution order"""
    normalize = "normalize"
    classify = "classify"
    group = "group"
    applicability = "applicability"
    enrich = "enrich"
    score = "score"
    conformity = "conformity"


ALLOWED_TRANSITIONS = {
    ScanStatus.pending: {ScanStatus.running, ScanStatus.failed},
    ScanStatus.running: {ScanStatus.completed, ScanStatus.failed},
    # A finished scan can only be rerun from scratch.
    ScanStatus.completed: {ScanStatus.pending},
    ScanStatus.failed: {ScanStatus.pending},
}


class FeatureSignals(BaseModel):
    """Presence of page features that decide which criteria can apply."""
    has_images: bool = False
    has_svg: bool = False
    has_tables: bool = False
    has_forms: bool = False
    has_videos: bool = False
    has_audio: bool = False
    has_iframes: bool = False
    has_animations: bool = False
    has_autoplay: bool = False
    has_autoplay_audio: bool = False
    has_time_limit: bool = False
    has_new_window_links: bool = False

    model_config = ConfigDict(frozen=True)


class ConformityResult(BaseModel):
    """
    Conformity of one scan against the reference.

    Tested criteria are the applicable auto-testable ones, split into
    conforming and non-conforming. Manual-only criteria that apply to the page
    are listed as not tested.
    """
    applicable_count: int
    conforming_count: int
    non_conforming_count: int
    not_applicable_count: int
    rate: Optional[float] = None
    non_conforming_criteria: List[str] = Field(default_factory=list)
    tested_criteria: List[str] = Field(default_factory=list)
    conforming_criteria: List[str] = Field(default_factory=list)
    not_tested_criteria: List[str] = Field(default_factory=list)


class Scan(BaseModel):
    """
    One audited page.

    Status changes go through ``transition_to`` so that only the edges in
    ALLOWED_TRANSITIONS can be taken.
    """
    id: str = Field(default_factory=lambda: str(uuid7()))
    url: str
    campaign_id: Optional[str] = None
    status: ScanStatus = ScanStatus.pending
    stage: Optional[PipelineStage] = None
    issues: List[Issue] = Field(default_factory=list)
    groups: List[IssueGroup] = Field(default_factory=list)
    non_applicable_criteria: List[str] = Field(default_factory=list)
    conformity: Optional[ConformityResult] = None
    error_message: Optional[str] = None

    def transition_to(self, target: ScanStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStatusTransition(self.status.value, target.value)
        self.status = target

    def fail(self, message: str) -> None:
        self.transition_to(ScanStatus.failed)
        self.error_message = message

    @property
    def conformity_rate(self) -> Optional[float]:
        return self.conformity.rate if self.conformity else None

    @property
    def severity_counts(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in IssueSeverity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        return counts

    @property
    def is_schedulable(self) -> bool:
        return self.status == ScanStatus.completed


class PipelineError(BaseModel):
    stage: PipelineStage
    message: str


class PipelineResult(BaseModel):
    """Outcome of one pipeline run: the scan, plus an error when it failed."""
    scan: Scan
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ScanProcessRequest(BaseModel):
    url: str
    campaign_id: Optional[str] = None
    payload: Dict[str, Any]
    html: Optional[str] = None
    signals: Optional[FeatureSignals] = None
    persist: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://example.com/",
                "campaign_id": "019ac123-4567-89ab-cdef-0123456789ab",
                "payload": {
                    "tests": [
                        {
                            "name": "Axe-core: image-alt",
                            "issues": [
                                {
                                    "severity": "critical",
                                    "message": "Images must have alternate text",
                                    "selector": "img.hero",
                                    "context": "<img class=\"hero\" src=\"/hero.png\">",
                                    "wcagCriteria": ["1.1.1 (A)"],
                                }
                            ],
                        }
                    ]
                },
                "html": "<html><body><img src=\"/hero.png\"></body></html>",
                "persist": True,
            }
        },
    )


class ScanResponse(BaseModel):
    id: str
    url: str
    campaign_id: Optional[str] = None
    status: str
    stage: Optional[str] = None
    error_message: Optional[str] = None
    total_issues: int
    severity_counts: Dict[str, int]
    conformity_rate: Optional[float] = None
    conformity: Optional[ConformityResult] = None
    non_applicable_criteria: List[str] = Field(default_factory=list)
    priority_statistics: Dict[str, int] = Field(default_factory=dict)
    groups: List[IssueGroupSummary] = Field(default_factory=list)
    top_priorities: List[IssueGroupSummary] = Field(default_factory=list)


class ScanComparison(BaseModel):
    """Differences between a baseline scan and a later scan (later minus baseline)."""
    baseline_id: str
    current_id: str
    baseline_rate: Optional[float] = None
    current_rate: Optional[float] = None
    conformity_difference: Optional[float] = None
    severity_differences: Dict[str, int] = Field(default_factory=dict)
    total_difference: int = 0
    resolved_criteria: List[str] = Field(default_factory=list)
    new_criteria: List[str] = Field(default_factory=list)
    resolved_error_types: List[str] = Field(default_factory=list)
    new_error_types: List[str] = Field(default_factory=list)
