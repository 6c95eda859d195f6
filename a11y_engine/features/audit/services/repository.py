import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from a11y_engine.features.audit.models.scan import ScanRecord
from a11y_engine.features.audit.models.scan_issue import ScanIssueRecord
from a11y_engine.features.audit.schemas.issue import Complexity, EnrichmentStatus, Issue
from a11y_engine.features.audit.schemas.scan import PipelineStage, Scan, ScanStatus
from a11y_engine.features.audit.services.conformity import ConformityCalculator
from a11y_engine.features.audit.services.grouping import GroupingEngine

logger = logging.getLogger(__name__)


class ScanRepository:
    """Rebuilds Scan objects, groups included, from their flat rows."""

    @staticmethod
    def get(db: Session, scan_id: str) -> Optional[Scan]:
        record = db.query(ScanRecord).filter(ScanRecord.id == scan_id).first()
        if record is None:
            return None
        return ScanRepository.to_scan(record)

    @staticmethod
    def completed_scan_ids(db: Session, campaign_id: str) -> List[str]:
        rows = (
            db.query(ScanRecord.id)
            .filter(ScanRecord.campaign_id == campaign_id, ScanRecord.status == ScanStatus.completed)
            .order_by(ScanRecord.created_at)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def to_scan(record: ScanRecord) -> Scan:
        rows: List[ScanIssueRecord] = sorted(record.issues, key=lambda r: r.position)
        issues = [
            Issue(
                error_type=row.error_type,
                source=row.source,
                severity=row.severity,
                selector=row.selector or "",
                context=row.context,
                primary_criterion=row.primary_criterion,
                secondary_criterion=row.secondary_criterion,
                description=row.description or "",
                scope=row.scope,
                recommendation=row.issue_recommendation,
                code_fix=row.issue_code_fix,
                impact_description=row.issue_impact_description,
            )
            for row in rows
        ]

        first_rows: Dict[tuple, ScanIssueRecord] = {}
        for row in rows:
            first_rows.setdefault((row.source.value, row.normalized_error_type), row)

        groups = GroupingEngine.group_issues(issues)
        for group in groups:
            row = first_rows.get(group.key)
            if row is None or row.enrichment_status is None:
                continue
            group.fingerprint = row.fingerprint
            group.primary_criterion = row.group_primary_criterion
            group.secondary_criterion = row.group_secondary_criterion
            group.topic = row.topic or 0
            group.recommendation = row.recommendation
            group.code_fix = row.code_fix
            group.impact_description = row.impact_description
            group.priority_score = row.priority_score or 0
            group.complexity = Complexity(row.complexity) if row.complexity else Complexity.medium
            group.enrichment_status = EnrichmentStatus(row.enrichment_status)
        groups.sort(key=lambda g: -g.priority_score)

        conformity = None
        if record.applicable_count is not None:
            # Criterion lists are rebuilt from the reference; the stored figures are kept as saved.
            rebuilt = ConformityCalculator().build_result(
                record.non_conforming_criteria or [], record.non_applicable_criteria or []
            )
            conformity = rebuilt.model_copy(update={
                "applicable_count": record.applicable_count,
                "conforming_count": record.conforming_count or 0,
                "non_conforming_count": record.non_conforming_count or 0,
                "rate": record.conformity_rate,
                "non_conforming_criteria": record.non_conforming_criteria or [],
            })

        return Scan(
            id=record.id,
            url=record.url,
            campaign_id=record.campaign_id,
            status=record.status,
            stage=PipelineStage(record.stage) if record.stage else None,
            issues=issues,
            groups=groups,
            non_applicable_criteria=record.non_applicable_criteria or [],
            conformity=conformity,
            error_message=record.error_message,
        )
