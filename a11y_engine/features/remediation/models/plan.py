from sqlalchemy import Column, Float, Integer, String, Text
from sqlalchemy.orm import relationship

from a11y_engine.platform.db.base import BaseModel


class RemediationPlanRecord(BaseModel):
    """A campaign's remediation plan. Recomputing a plan replaces this row and its items."""
    __tablename__ = "remediation_plans"

    campaign_id = Column(String, nullable=True, index=True)
    duration_years = Column(Integer, nullable=False)
    start_year = Column(Integer, nullable=False)
    start_quarter = Column(Integer, nullable=False)
    items_per_quarter = Column(Integer, nullable=False)

    current_rate = Column(Float, nullable=True)
    target_rate = Column(Float, nullable=False)
    total_effort_hours = Column(Integer, default=0, nullable=False)
    executive_summary = Column(Text, nullable=True)

    items = relationship(
        "RemediationItemRecord",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="RemediationItemRecord.priority_rank",
        lazy="select",
    )
