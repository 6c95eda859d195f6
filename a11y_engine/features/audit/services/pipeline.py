import logging
from typing import Any, Dict, List, Optional

from a11y_engine.features.audit.schemas.issue import IssueGroup
from a11y_engine.features.audit.schemas.scan import (
    FeatureSignals,
    PipelineError,
    PipelineResult,
    PipelineStage,
    Scan,
    ScanStatus,
)
from a11y_engine.features.audit.services.applicability import ApplicabilityDetector
from a11y_engine.features.audit.services.conformity import ConformityCalculator
from a11y_engine.features.audit.services.grouping import GroupingEngine
from a11y_engine.features.audit.services.heuristics import complexity
from a11y_engine.features.audit.services.normalizer import FindingNormalizer
from a11y_engine.features.audit.services.priority import PriorityScorer
from a11y_engine.features.enrichment.services.enricher import IssueEnricher
from a11y_engine.features.taxonomy.services.classifier import TaxonomyClassifier

logger = logging.getLogger(__name__)


class AuditPipeline:
    """
    Per-scan pipeline: normalize, group, classify, applicability, enrich, score,
    conformity.

    ``run`` does not raise for pipeline failures. It returns a PipelineResult
    whose scan has taken the ``failed`` edge, with whatever issues and groups
    were produced before the failing stage still attached.
    """

    def __init__(
        self,
        enricher: IssueEnricher,
        normalizer: Optional[FindingNormalizer] = None,
        classifier: Optional[TaxonomyClassifier] = None,
        conformity: Optional[ConformityCalculator] = None,
    ):
        self.enricher = enricher
        self.normalizer = normalizer or FindingNormalizer()
        self.classifier = classifier or TaxonomyClassifier()
        self.conformity = conformity or ConformityCalculator(self.classifier.reference)

    def run(
        self,
        scan: Scan,
        payload: Dict[str, Any],
        signals: Optional[FeatureSignals] = None,
        html: Optional[str] = None,
    ) -> PipelineResult:
        scan.transition_to(ScanStatus.running)
        logger.info(f"[{scan.id}] Pipeline started for {scan.url}")

        stage = PipelineStage.normalize
        try:
            scan.stage = stage
            scan.issues = self.normalizer.normalize_payload(payload, scope=scan.url)
            logger.info(f"[{scan.id}] Normalized {len(scan.issues)} findings")

            stage = PipelineStage.group
            scan.stage = stage
            scan.groups = GroupingEngine.group_issues(scan.issues)

            stage = PipelineStage.classify
            scan.stage = stage
            self.classify_groups(scan.groups)

            stage = PipelineStage.applicability
            scan.stage = stage
            if signals is None:
                signals = ApplicabilityDetector.analyze_markup(html) if html else FeatureSignals()
            scan.non_applicable_criteria = ApplicabilityDetector.detect_not_applicable(signals)

            stage = PipelineStage.enrich
            scan.stage = stage
            self.enricher.enrich(scan.groups, scan_id=scan.id)
            # Enrichment can bring criteria for groups that had none.
            self.classify_groups(scan.groups)

            stage = PipelineStage.score
            scan.stage = stage
            for group in scan.groups:
                group.complexity = complexity(group.error_type, group.recommendation)
            scan.groups = PriorityScorer.score_groups(scan.groups)

            stage = PipelineStage.conformity
            scan.stage = stage
            scan.conformity = self.conformity.calculate(scan.groups, scan.non_applicable_criteria)

        except Exception as e:
            message = f"{stage.value} failed: {e}"
            logger.error(f"[{scan.id}] Pipeline {message}", exc_info=True)
            scan.fail(message)
            return PipelineResult(scan=scan, error=PipelineError(stage=stage, message=str(e)))

        scan.transition_to(ScanStatus.completed)
        logger.info(
            f"[{scan.id}] Pipeline completed: {len(scan.groups)} groups, "
            f"conformity={scan.conformity_rate}"
        )
        return PipelineResult(scan=scan)

    def classify_groups(self, groups: List[IssueGroup]) -> None:
        uncategorized = 0
        for group in groups:
            classification = self.classifier.classify(group.primary_criterion, group.secondary_criterion)
            group.topic = classification.topic
            group.primary_criterion = classification.criterion
            group.secondary_criterion = classification.secondary
            if classification.is_uncategorized:
                uncategorized += 1
        if uncategorized:
            logger.warning(f"{uncategorized} of {len(groups)} groups have no criterion and no topic")
