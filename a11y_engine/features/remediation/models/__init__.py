"""
Remediation models package.
"""
from a11y_engine.features.remediation.models.item import RemediationItemRecord
from a11y_engine.features.remediation.models.plan import RemediationPlanRecord

__all__ = ["RemediationPlanRecord", "RemediationItemRecord"]
