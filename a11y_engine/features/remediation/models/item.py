from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from a11y_engine.platform.db.base import BaseModel


class RemediationItemRecord(BaseModel):
    """One plan item. Unscheduled items are kept with scheduled=False and the reason."""
    __tablename__ = "remediation_items"

    plan_id = Column(String, ForeignKey("remediation_plans.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String(16), nullable=False)
    category = Column(String(16), nullable=False)

    # Slot (the would-be slot for unscheduled items)
    year = Column(Integer, nullable=False)
    quarter = Column(Integer, nullable=False)
    scheduled = Column(Boolean, default=True, nullable=False)
    unscheduled_reason = Column(Text, nullable=True)

    priority_rank = Column(Integer, nullable=False)
    priority_score = Column(Integer, nullable=False)
    is_quick_win = Column(Boolean, default=False, nullable=False)
    estimated_effort_hours = Column(Integer, nullable=False)
    impact_score = Column(Integer, nullable=False)
    occurrence_count = Column(Integer, nullable=False)
    affected_scope_count = Column(Integer, nullable=False)
    affected_scopes = Column(JSON, nullable=True)
    criteria = Column(JSON, nullable=True)
    technical_details = Column(Text, nullable=True)
    acceptance_criteria = Column(Text, nullable=True)

    plan = relationship("RemediationPlanRecord", back_populates="items")
