from sqlalchemy import JSON, Column, DateTime, Enum, Float, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from a11y_engine.features.audit.schemas.scan import ScanStatus
from a11y_engine.platform.db.base import BaseModel


class ScanRecord(BaseModel):
    """
    One audited page and its aggregate results.

    Issues live in scan_issues; everything here is derived from them except the
    status, stage and error message.
    """
    __tablename__ = "scans"

    url = Column(String(2048), nullable=False)
    campaign_id = Column(String, nullable=True, index=True)

    # Lifecycle
    status = Column(Enum(ScanStatus), default=ScanStatus.pending, nullable=False, index=True)
    stage = Column(String(32), nullable=True)
    error_message = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Counts by severity
    total_issues = Column(Integer, default=0, nullable=False)
    critical_count = Column(Integer, default=0, nullable=False)
    major_count = Column(Integer, default=0, nullable=False)
    minor_count = Column(Integer, default=0, nullable=False)

    # Conformity
    conformity_rate = Column(Float, nullable=True)  # 0-100, null when nothing applies
    applicable_count = Column(Integer, nullable=True)
    conforming_count = Column(Integer, nullable=True)
    non_conforming_count = Column(Integer, nullable=True)
    non_conforming_criteria = Column(JSON, nullable=True)
    non_applicable_criteria = Column(JSON, nullable=True)

    issues = relationship(
        "ScanIssueRecord",
        back_populates="scan",
        cascade="all, delete-orphan",
        order_by="ScanIssueRecord.position",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_scans_campaign_status", "campaign_id", "status"),
    )
