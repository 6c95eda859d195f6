import json
from unittest.mock import MagicMock

import pytest

from conftest import make_ai_client, make_completion

from a11y_engine.features.enrichment.schemas.enrichment import EnrichmentRequest
from a11y_engine.features.enrichment.services.gateway import AIGateway, parse_json_payload
from a11y_engine.platform.exceptions import AIResponseError, EnrichmentError


def request(fp="a" * 64, error_type="Missing alt"):
    return EnrichmentRequest(fingerprint=fp, error_type=error_type, sample_context='<img src="logo.png">')


class TestParseJsonPayload:

    def test_plain_json(self):
        assert parse_json_payload('{"results": []}') == {"results": []}

    def test_fenced_json(self):
        assert parse_json_payload('```json\n{"results": [1]}\n```') == {"results": [1]}

    def test_json_with_chatter(self):
        assert parse_json_payload('Sure! Here it is: {"a": 1} Hope it helps.') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "   ", "no json at all", '{"a": '])
    def test_unusable_text_raises(self, text):
        with pytest.raises(AIResponseError):
            parse_json_payload(text)


class TestComplete:

    def test_retries_rate_limits_with_backoff(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            Exception("429 Too Many Requests"),
            Exception("Rate limit exceeded"),
            make_completion('{"ok": true}'),
        ]
        waits = []
        gateway = AIGateway(client=client, max_retries=3, retry_delay=1.0, sleep=waits.append)

        assert gateway.complete("prompt") == '{"ok": true}'
        assert waits == [1.0, 2.0]
        assert client.chat.completions.create.call_count == 3

    def test_non_retryable_error_fails_immediately(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = ValueError("bad request")
        gateway = AIGateway(client=client, max_retries=3, sleep=lambda _: None)

        with pytest.raises(EnrichmentError):
            gateway.complete("prompt")
        assert client.chat.completions.create.call_count == 1

    def test_gives_up_after_max_retries(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = Exception("429")
        gateway = AIGateway(client=client, max_retries=2, sleep=lambda _: None)

        with pytest.raises(EnrichmentError):
            gateway.complete("prompt")
        assert client.chat.completions.create.call_count == 2

    def test_empty_answer_is_an_error(self):
        client = MagicMock()
        client.chat.completions.create.return_value = make_completion("")
        with pytest.raises(EnrichmentError):
            AIGateway(client=client, max_retries=1).complete("prompt")

    def test_missing_api_key(self):
        with pytest.raises(EnrichmentError):
            AIGateway(max_retries=1).complete("prompt")


class TestEnrichBatch:

    def test_results_are_mapped(self):
        gateway = AIGateway(client=make_ai_client(primary="1.1", secondary="1.1.1"), max_retries=1)
        batch = gateway.enrich_batch([request()])

        assert list(batch.results) == ["a" * 64]
        response = batch.results["a" * 64]
        assert response.recommendation.startswith("Add alt")
        assert response.code_fix
        assert response.to_enrichment().primary_criterion == "1.1"
        assert batch.failures == {}

    def test_missing_fingerprint_is_reported(self):
        client = MagicMock()
        client.chat.completions.create.return_value = make_completion(json.dumps({
            "results": [{"fingerprint": "a" * 64, "recommendation": "Do the thing"}],
        }))
        batch = AIGateway(client=client, max_retries=1).enrich_batch([request(), request(fp="b" * 64)])

        assert set(batch.results) == {"a" * 64}
        assert batch.failures == {"b" * 64: "No result returned for fingerprint"}

    def test_explicit_failures_and_unrequested_entries(self):
        client = MagicMock()
        client.chat.completions.create.return_value = make_completion(json.dumps({
            "results": [{"fingerprint": "z" * 64, "recommendation": "Not asked"}],
            "failures": [{"fingerprint": "a" * 64, "reason": "Not enough context"}],
        }))
        batch = AIGateway(client=client, max_retries=1).enrich_batch([request()])

        assert batch.results == {}
        assert batch.failures == {"a" * 64: "Not enough context"}

    def test_call_failure_fails_every_fingerprint(self, failing_ai_client):
        gateway = AIGateway(client=failing_ai_client, max_retries=1)
        batch = gateway.enrich_batch([request(), request(fp="b" * 64)])

        assert batch.results == {}
        assert set(batch.failures) == {"a" * 64, "b" * 64}

    def test_empty_batch_makes_no_call(self, ai_client):
        batch = AIGateway(client=ai_client).enrich_batch([])
        assert batch.results == {} and batch.failures == {}
        ai_client.chat.completions.create.assert_not_called()

    def test_prompt_contains_fingerprints(self):
        prompt = AIGateway.build_prompt([request()])
        assert '"fingerprint": "' + "a" * 64 + '"' in prompt
        assert "standardRefs" in prompt
