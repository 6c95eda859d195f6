import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

from a11y_engine.features.audit.schemas.issue import EnrichmentStatus, IssueGroup
from a11y_engine.features.audit.services.heuristics import fallback_recommendation, is_generic_recommendation
from a11y_engine.features.enrichment.schemas.enrichment import Enrichment, EnrichmentReport, EnrichmentRequest
from a11y_engine.features.enrichment.services.cache import EnrichmentCache, fingerprint
from a11y_engine.features.enrichment.services.gateway import AIGateway
from a11y_engine.platform.config import settings

logger = logging.getLogger(__name__)


class IssueEnricher:
    """
    Merges AI remediation guidance into issue groups through the cache.

    Each distinct fingerprint costs at most one AI call for the lifetime of the
    cache. Different fingerprints are resolved concurrently on a bounded pool;
    the same fingerprint is serialized behind its cache lock. A failed call
    leaves the group with the keyword fallback recommendation.
    """

    def __init__(
        self,
        cache: EnrichmentCache,
        gateway: Optional[AIGateway] = None,
        max_workers: Optional[int] = None,
    ):
        self.cache = cache
        self.gateway = gateway or AIGateway()
        self.max_workers = max_workers or settings.ENRICHMENT_MAX_WORKERS

    @staticmethod
    def assign_fingerprints(groups: Iterable[IssueGroup]) -> Dict[str, List[IssueGroup]]:
        by_fp: Dict[str, List[IssueGroup]] = {}
        for group in groups:
            group.fingerprint = fingerprint(group.source, group.normalized_error_type)
            by_fp.setdefault(group.fingerprint, []).append(group)
        return by_fp

    def enrich(self, groups: List[IssueGroup], scan_id: Optional[str] = None) -> EnrichmentReport:
        prefix = f"[{scan_id}] " if scan_id else ""
        report = EnrichmentReport()
        by_fp = self.assign_fingerprints(groups)

        pending: Dict[str, List[IssueGroup]] = {}
        for fp, fp_groups in by_fp.items():
            # Checkers that already suggest a fix (AI analyzers) seed the cache themselves.
            seeded = next(
                (g for g in fp_groups if g.recommendation and not is_generic_recommendation(g.recommendation)),
                None,
            )
            if seeded is not None and not self.cache.has(fp):
                self.cache.put(fp, self._enrichment_from_group(seeded))

            cached = self.cache.get(fp)
            if cached is not None:
                for group in fp_groups:
                    self._apply(group, cached)
                report.from_cache += len(fp_groups)
            else:
                pending[fp] = fp_groups

        if pending:
            logger.info(f"{prefix}Resolving {len(pending)} uncached fingerprints with the AI collaborator")
            workers = max(1, min(self.max_workers, len(pending)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    fp: executor.submit(self._resolve, self._request_for(fp, fp_groups))
                    for fp, fp_groups in pending.items()
                }
                for fp, future in futures.items():
                    enrichment, called_ai, error = future.result()
                    if called_ai:
                        report.ai_calls += 1
                    if enrichment is None:
                        logger.warning(f"{prefix}Enrichment failed for {pending[fp][0].error_type}: {error}")
                        report.failed_fingerprints.append(fp)
                        for group in pending[fp]:
                            self._apply_fallback(group)
                        report.fallback += len(pending[fp])
                        continue
                    for group in pending[fp]:
                        self._apply(group, enrichment)
                    report.enriched += len(pending[fp])

        self.cache.log_stats()
        logger.info(
            f"{prefix}Enrichment done: {report.enriched} enriched, {report.from_cache} from cache, "
            f"{report.fallback} fallback, {report.ai_calls} AI calls"
        )
        return report

    @staticmethod
    def _request_for(fp: str, fp_groups: List[IssueGroup]) -> EnrichmentRequest:
        sample = fp_groups[0].first_occurrence
        return EnrichmentRequest(
            fingerprint=fp,
            error_type=fp_groups[0].error_type,
            sample_context=sample.context or sample.description or sample.selector,
        )

    def _resolve(self, request: EnrichmentRequest):
        """Return (enrichment or None, whether the AI was called, failure reason)."""
        with self.cache.lock_for(request.fingerprint):
            cached = self.cache.peek(request.fingerprint)
            if cached is not None:
                return cached, False, None

            try:
                batch = self.gateway.enrich_batch([request])
            except Exception as e:
                logger.exception(f"Unexpected enrichment error for {request.fingerprint}: {e}")
                return None, True, str(e)

            response = batch.results.get(request.fingerprint)
            if response is None:
                return None, True, batch.failures.get(request.fingerprint, "unknown failure")

            enrichment = response.to_enrichment()
            self.cache.put(request.fingerprint, enrichment)
            return enrichment, True, None

    @staticmethod
    def _enrichment_from_group(group: IssueGroup) -> Enrichment:
        return Enrichment(
            recommendation=group.recommendation,
            code_fix=group.code_fix,
            impact_description=group.impact_description,
            primary_criterion=group.primary_criterion,
            secondary_criterion=group.secondary_criterion,
        )

    @staticmethod
    def _apply(group: IssueGroup, enrichment: Enrichment) -> None:
        recommendation = enrichment.recommendation
        if group.recommendation and not is_generic_recommendation(group.recommendation):
            group.enrichment_status = EnrichmentStatus.enriched
        elif is_generic_recommendation(recommendation):
            logger.warning(f"Generic recommendation replaced for {group.error_type}")
            group.recommendation = fallback_recommendation(group.error_type, group.first_occurrence.selector)
            group.enrichment_status = EnrichmentStatus.fallback
        else:
            group.recommendation = recommendation
            group.enrichment_status = EnrichmentStatus.enriched

        group.code_fix = group.code_fix or enrichment.code_fix
        group.impact_description = group.impact_description or enrichment.impact_description
        group.primary_criterion = group.primary_criterion or enrichment.primary_criterion
        group.secondary_criterion = group.secondary_criterion or enrichment.secondary_criterion

    @staticmethod
    def _apply_fallback(group: IssueGroup) -> None:
        group.recommendation = fallback_recommendation(group.error_type, group.first_occurrence.selector)
        group.enrichment_status = EnrichmentStatus.fallback
