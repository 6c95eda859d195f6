from unittest.mock import MagicMock

from conftest import make_ai_client, make_issue

from a11y_engine.features.audit.schemas.issue import EnrichmentStatus, IssueSource
from a11y_engine.features.audit.services.grouping import GroupingEngine
from a11y_engine.features.audit.services.heuristics import FALLBACK_RECOMMENDATIONS
from a11y_engine.features.enrichment.services.cache import EnrichmentCache, fingerprint
from a11y_engine.features.enrichment.services.enricher import IssueEnricher
from a11y_engine.features.enrichment.services.gateway import AIGateway


def build_enricher(client, cache=None):
    return IssueEnricher(cache or EnrichmentCache(), gateway=AIGateway(client=client, max_retries=1), max_workers=4)


class TestIssueEnricher:

    def test_enriches_every_group_of_a_fingerprint(self, ai_client):
        groups = GroupingEngine.group_issues([
            make_issue("Missing alt"),
            make_issue("Missing alt #2"),
            make_issue("Low contrast", source=IssueSource.static_analyzer),
        ])
        report = build_enricher(ai_client).enrich(groups, scan_id="scan-1")

        assert report.enriched == 2
        assert report.ai_calls == 2
        assert report.fallback == 0
        for group in groups:
            assert group.enrichment_status == EnrichmentStatus.enriched
            assert group.recommendation.startswith("Add alt")
            assert group.fingerprint == fingerprint(group.source, group.normalized_error_type)

    def test_one_ai_call_per_fingerprint_per_cache(self, ai_client):
        cache = EnrichmentCache()
        enricher = build_enricher(ai_client, cache)

        enricher.enrich(GroupingEngine.group_issues([make_issue("Missing alt")]))
        report = enricher.enrich(GroupingEngine.group_issues([make_issue("Missing alt", scope="https://example.com/b")]))

        assert ai_client.chat.completions.create.call_count == 1
        assert report.from_cache == 1
        assert report.ai_calls == 0
        assert cache.stats().hits == 1

    def test_failure_falls_back_to_keyword_recommendation(self, failing_ai_client):
        groups = GroupingEngine.group_issues([make_issue("Missing alt")])
        report = build_enricher(failing_ai_client).enrich(groups)

        assert report.fallback == 1
        assert report.failed_fingerprints == [groups[0].fingerprint]
        assert groups[0].enrichment_status == EnrichmentStatus.fallback
        assert groups[0].recommendation == FALLBACK_RECOMMENDATIONS["image"]

    def test_failed_fingerprint_is_not_cached(self, failing_ai_client):
        cache = EnrichmentCache()
        groups = GroupingEngine.group_issues([make_issue("Missing alt")])
        build_enricher(failing_ai_client, cache).enrich(groups)
        assert not cache.has(groups[0].fingerprint)

    def test_generic_ai_answer_is_replaced(self):
        client = make_ai_client(recommendation="Check the code and apply the corrections.")
        groups = GroupingEngine.group_issues([make_issue("Low contrast")])
        build_enricher(client).enrich(groups)

        assert groups[0].enrichment_status == EnrichmentStatus.fallback
        assert groups[0].recommendation == FALLBACK_RECOMMENDATIONS["contrast"]
        assert groups[0].code_fix

    def test_checker_recommendation_seeds_cache_without_ai_call(self):
        client = MagicMock()
        cache = EnrichmentCache()
        groups = GroupingEngine.group_issues([
            make_issue("image-alt-generic", source=IssueSource.ai_visual, recommendation="Describe the ACME logo"),
        ])
        build_enricher(client, cache).enrich(groups)

        client.chat.completions.create.assert_not_called()
        assert cache.peek(groups[0].fingerprint).recommendation == "Describe the ACME logo"
        assert groups[0].recommendation == "Describe the ACME logo"

    def test_ai_criteria_fill_missing_ones_only(self):
        client = make_ai_client(primary="1.1", secondary="1.1.1")
        groups = GroupingEngine.group_issues([
            make_issue("Missing alt"),
            make_issue("Empty link", primary_criterion="6.2"),
        ])
        build_enricher(client).enrich(groups)

        by_type = {g.error_type: g for g in groups}
        assert by_type["Missing alt"].primary_criterion == "1.1"
        assert by_type["Empty link"].primary_criterion == "6.2"
