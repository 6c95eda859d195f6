import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from a11y_engine.features.audit.models.scan import ScanRecord
from a11y_engine.features.audit.models.scan_issue import ScanIssueRecord
from a11y_engine.features.audit.schemas.scan import Scan, ScanStatus
from a11y_engine.features.audit.services.grouping import group_key

logger = logging.getLogger(__name__)


class ScanResultSaver:

    @staticmethod
    def save(db: Session, scan: Scan) -> ScanRecord:
        """
        Persist a scan and all of its issues as one batch.

        A previous run of the same scan is replaced, never merged. Failed scans
        are saved with whatever issues they had when they stopped.
        """
        try:
            record = db.query(ScanRecord).filter(ScanRecord.id == scan.id).first()
            if record is None:
                record = ScanRecord(id=scan.id, url=scan.url)
                db.add(record)
            else:
                db.query(ScanIssueRecord).filter(ScanIssueRecord.scan_id == scan.id).delete(
                    synchronize_session=False
                )

            counts = scan.severity_counts
            record.url = scan.url
            record.campaign_id = scan.campaign_id
            record.status = scan.status
            record.stage = scan.stage.value if scan.stage else None
            record.error_message = scan.error_message
            record.total_issues = len(scan.issues)
            record.critical_count = counts["critical"]
            record.major_count = counts["major"]
            record.minor_count = counts["minor"]
            record.non_applicable_criteria = list(scan.non_applicable_criteria)
            record.completed_at = datetime.now(timezone.utc) if scan.status == ScanStatus.completed else None

            conformity = scan.conformity
            record.conformity_rate = conformity.rate if conformity else None
            record.applicable_count = conformity.applicable_count if conformity else None
            record.conforming_count = conformity.conforming_count if conformity else None
            record.non_conforming_count = conformity.non_conforming_count if conformity else None
            record.non_conforming_criteria = list(conformity.non_conforming_criteria) if conformity else None

            groups = {group.key: group for group in scan.groups}
            for position, issue in enumerate(scan.issues):
                key = group_key(issue)
                group = groups.get(key)
                db.add(ScanIssueRecord(
                    scan_id=scan.id,
                    position=position,
                    error_type=issue.error_type,
                    source=issue.source,
                    severity=issue.severity,
                    selector=issue.selector,
                    context=issue.context,
                    description=issue.description,
                    scope=issue.scope,
                    primary_criterion=issue.primary_criterion,
                    secondary_criterion=issue.secondary_criterion,
                    issue_recommendation=issue.recommendation,
                    issue_code_fix=issue.code_fix,
                    issue_impact_description=issue.impact_description,
                    normalized_error_type=key[1],
                    fingerprint=group.fingerprint if group else None,
                    group_severity=group.severity if group else None,
                    group_primary_criterion=group.primary_criterion if group else None,
                    group_secondary_criterion=group.secondary_criterion if group else None,
                    topic=group.topic if group else 0,
                    recommendation=group.recommendation if group else None,
                    code_fix=group.code_fix if group else None,
                    impact_description=group.impact_description if group else None,
                    priority_score=group.priority_score if group else 0,
                    complexity=group.complexity.value if group else None,
                    enrichment_status=group.enrichment_status.value if group else None,
                ))

            db.commit()
            db.refresh(record)
            logger.info(f"[{scan.id}] Saved scan ({scan.status.value}) with {len(scan.issues)} issues")
            return record

        except Exception as e:
            db.rollback()
            logger.error(f"[{scan.id}] Failed to save scan results: {e}")
            raise
