"""
Remediation Plan Schemas

Scheduled work items, their per-year / per-quarter buckets and the request
model of the plan endpoint.
"""
import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from a11y_engine.platform.config import settings


class ActionCategory(str, enum.Enum):
    structural = "structural"
    content = "content"
    technical = "technical"
    training = "training"


class RemediationItem(BaseModel):
    """One scheduled unit of work derived from one issue group."""
    title: str
    description: str = ""
    severity: str
    category: ActionCategory
    year: int
    quarter: int = Field(ge=1, le=4)
    priority_rank: int
    priority_score: int
    is_quick_win: bool = False
    estimated_effort_hours: int = Field(ge=1, le=40)
    impact_score: int = Field(ge=0, le=100)
    occurrence_count: int
    affected_scope_count: int
    affected_scopes: List[str] = Field(default_factory=list)
    criteria: List[str] = Field(default_factory=list)
    technical_details: Optional[str] = None
    acceptance_criteria: str = ""

    model_config = ConfigDict(frozen=True)


class UnscheduledItem(BaseModel):
    """An item that did not fit before the end of the plan; year/quarter are where it would have gone."""
    item: RemediationItem
    reason: str


class QuarterPlan(BaseModel):
    quarter: int
    items: List[RemediationItem] = Field(default_factory=list)
    effort_hours: int = 0


class AnnualPlan(BaseModel):
    year: int
    quarters: List[QuarterPlan] = Field(default_factory=list)
    total_items: int = 0
    total_effort_hours: int = 0
    severity_counts: Dict[str, int] = Field(default_factory=dict)
    quick_win_count: int = 0


class RemediationPlan(BaseModel):
    campaign_id: Optional[str] = None
    duration_years: int
    start_year: int
    start_quarter: int
    total_quarters: int
    items_per_quarter: int
    current_rate: Optional[float] = None
    target_rate: float
    items: List[RemediationItem] = Field(default_factory=list)
    annual_plans: List[AnnualPlan] = Field(default_factory=list)
    unscheduled: List[UnscheduledItem] = Field(default_factory=list)
    executive_summary: Optional[str] = None

    @property
    def end_year(self) -> int:
        return self.start_year + self.duration_years

    @property
    def quick_wins(self) -> List[RemediationItem]:
        return [item for item in self.items if item.is_quick_win]

    @property
    def total_effort_hours(self) -> int:
        return sum(item.estimated_effort_hours for item in self.items)


class InlineScan(BaseModel):
    url: str
    payload: Dict[str, Any]
    html: Optional[str] = None


class PlanRequest(BaseModel):
    campaign_id: Optional[str] = None
    scan_ids: List[str] = Field(default_factory=list)
    scans: List[InlineScan] = Field(default_factory=list)
    duration_years: int = Field(default=settings.PLAN_DEFAULT_DURATION_YEARS, ge=1, le=5)
    start_year: Optional[int] = None
    start_quarter: Optional[int] = Field(default=None, ge=1, le=4)
    current_rate: Optional[float] = Field(default=None, ge=0, le=100)
    with_summary: bool = False
    persist: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "campaign_id": "019ac123-4567-89ab-cdef-0123456789ab",
                "duration_years": 2,
                "start_year": 2025,
                "start_quarter": 1,
                "with_summary": False,
                "persist": True,
            }
        },
    )
