"""
Audit models package.
"""
from a11y_engine.features.audit.models.scan import ScanRecord
from a11y_engine.features.audit.models.scan_issue import ScanIssueRecord

__all__ = ["ScanRecord", "ScanIssueRecord"]
