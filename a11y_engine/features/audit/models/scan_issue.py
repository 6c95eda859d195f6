from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from a11y_engine.features.audit.schemas.issue import IssueSeverity, IssueSource
from a11y_engine.platform.db.base import BaseModel


class ScanIssueRecord(BaseModel):
    """
    One detection, flattened together with the resolved fields of its group.

    Group columns repeat on every row of the group so a scan's groups can be
    rebuilt from its rows alone.
    """
    __tablename__ = "scan_issues"

    scan_id = Column(String, ForeignKey("scans.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # input order within the scan

    # Detection
    error_type = Column(String(512), nullable=False)
    source = Column(Enum(IssueSource), nullable=False, index=True)
    severity = Column(Enum(IssueSeverity), nullable=False, index=True)
    selector = Column(Text, nullable=True)
    context = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    scope = Column(String(2048), nullable=True)
    primary_criterion = Column(String(64), nullable=True)
    secondary_criterion = Column(String(256), nullable=True)
    issue_recommendation = Column(Text, nullable=True)
    issue_code_fix = Column(Text, nullable=True)
    issue_impact_description = Column(Text, nullable=True)

    # Group
    normalized_error_type = Column(String(512), nullable=False)
    fingerprint = Column(String(64), nullable=True, index=True)
    group_severity = Column(Enum(IssueSeverity), nullable=True)
    group_primary_criterion = Column(String(16), nullable=True)
    group_secondary_criterion = Column(String(64), nullable=True)
    topic = Column(Integer, default=0, nullable=False)
    recommendation = Column(Text, nullable=True)
    code_fix = Column(Text, nullable=True)
    impact_description = Column(Text, nullable=True)
    priority_score = Column(Integer, default=0, nullable=False)
    complexity = Column(String(16), nullable=True)
    enrichment_status = Column(String(16), nullable=True)

    scan = relationship("ScanRecord", back_populates="issues", lazy="select")

    __table_args__ = (
        Index("idx_scan_issues_group", "scan_id", "source", "normalized_error_type"),
    )
