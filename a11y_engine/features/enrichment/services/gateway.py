import json
import logging
import time
from typing import Any, Dict, List, Optional

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, RateLimitError

from a11y_engine.features.enrichment.schemas.enrichment import (
    EnrichmentBatchResult,
    EnrichmentRequest,
    EnrichmentResponse,
    StandardRefs,
)
from a11y_engine.platform.config import settings
from a11y_engine.platform.exceptions import AIResponseError, EnrichmentError

logger = logging.getLogger(__name__)

EXTRA_HEADERS = {
    "HTTP-Referer": "https://a11y-engine.local",
    "X-Title": "A11y Audit Engine",
}

SYSTEM_PROMPT = (
    "You are a web accessibility expert (RGAA 4.1 and WCAG 2.1). "
    "Always respond with valid JSON only."
)

MAX_CONTEXT_CHARS = 1500


def parse_json_payload(text: str) -> Any:
    """
    Parse a JSON answer, tolerating markdown code fences and trailing chatter.

    Raises AIResponseError when nothing usable can be recovered.
    """
    if not text or not text.strip():
        raise AIResponseError("AI collaborator returned an empty response")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else cleaned
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
        cleaned = cleaned.replace("```json", "").replace("```", "").strip()

    start = min((i for i in (cleaned.find("{"), cleaned.find("[")) if i >= 0), default=-1)
    if start < 0:
        raise AIResponseError("AI response contains no JSON document")
    closing = "}" if cleaned[start] == "{" else "]"
    end = cleaned.rfind(closing)
    if end <= start:
        raise AIResponseError("AI response JSON is truncated")

    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise AIResponseError(f"AI response is not valid JSON: {e}") from e


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, (RateLimitError, APIConnectionError, APITimeoutError)):
        return True
    if isinstance(error, APIStatusError):
        return error.status_code == 429 or error.status_code >= 500
    error_str = str(error).lower()
    return "429" in error_str or "rate limit" in error_str


def _pick(entry: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value if v)
        if value:
            return str(value)
    return None


class AIGateway:
    """
    Client for the AI collaborator (OpenAI-compatible chat completions, OpenRouter).

    ``enrich_batch`` never raises: every requested fingerprint comes back either
    as a result or as an explicit failure with a reason.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0,
        sleep=time.sleep,
    ):
        self._client = client
        self.model = model or settings.AI_MODEL
        self.max_retries = max_retries if max_retries is not None else settings.AI_MAX_RETRIES
        self.retry_delay = retry_delay
        self._sleep = sleep

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not settings.OPENROUTER_API_KEY:
                raise EnrichmentError("OPENROUTER_API_KEY is not configured")
            self._client = OpenAI(
                base_url=settings.AI_BASE_URL,
                api_key=settings.OPENROUTER_API_KEY,
                timeout=settings.AI_TIMEOUT_SECONDS,
            )
        return self._client

    def complete(self, prompt: str, system_prompt: str = SYSTEM_PROMPT, temperature: Optional[float] = None) -> str:
        """One chat completion with exponential backoff on rate limits and server errors."""
        attempts = max(1, self.max_retries)
        for attempt in range(attempts):
            try:
                completion = self.client.chat.completions.create(
                    extra_headers=EXTRA_HEADERS,
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=settings.AI_TEMPERATURE if temperature is None else temperature,
                )
                text = completion.choices[0].message.content or ""
                if not text.strip():
                    raise AIResponseError("AI collaborator returned an empty response")
                return text

            except EnrichmentError:
                raise
            except Exception as e:
                if _is_retryable(e) and attempt < attempts - 1:
                    wait_time = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"AI call failed (attempt {attempt + 1}/{attempts}): {e}. "
                        f"Retrying in {wait_time} seconds..."
                    )
                    self._sleep(wait_time)
                    continue
                raise EnrichmentError(f"AI call failed: {e}") from e

        raise EnrichmentError("AI call failed after retries")

    @staticmethod
    def build_prompt(requests: List[EnrichmentRequest]) -> str:
        items = [
            {
                "fingerprint": request.fingerprint,
                "errorType": request.error_type,
                "sampleContext": (request.sample_context or "")[:MAX_CONTEXT_CHARS],
            }
            for request in requests
        ]
        return (
            "For each accessibility issue below, give a concrete remediation.\n\n"
            f"Issues:\n{json.dumps(items, ensure_ascii=False, indent=2)}\n\n"
            "Respond with ONLY this JSON structure, one entry per fingerprint:\n"
            "{\n"
            '  "results": [{"fingerprint": "string", "recommendation": "string", '
            '"codeFix": "string", "impactDescription": "string", '
            '"standardRefs": {"primary": "RGAA criterion e.g. 1.1", "secondary": "WCAG criterion e.g. 1.1.1"}}],\n'
            '  "failures": [{"fingerprint": "string", "reason": "string"}]\n'
            "}\n"
            "The recommendation must name the element and the exact change to make. "
            "Do not include any text before or after the JSON."
        )

    def enrich_batch(self, requests: List[EnrichmentRequest]) -> EnrichmentBatchResult:
        result = EnrichmentBatchResult()
        if not requests:
            return result

        requested = {request.fingerprint for request in requests}
        try:
            payload = parse_json_payload(self.complete(self.build_prompt(requests)))
        except EnrichmentError as e:
            logger.error(f"Enrichment batch of {len(requests)} failed: {e}")
            result.failures = {fp: str(e) for fp in requested}
            return result

        entries = payload.get("results", []) if isinstance(payload, dict) else payload
        failures = payload.get("failures", []) if isinstance(payload, dict) else []

        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict):
                continue
            fp = entry.get("fingerprint")
            if fp not in requested:
                logger.warning(f"AI returned an unrequested fingerprint: {fp}")
                continue
            if entry.get("error"):
                result.failures[fp] = str(entry["error"])
                continue

            refs = entry.get("standardRefs") or entry.get("standard_refs") or {}
            if not isinstance(refs, dict):
                refs = {"secondary": _pick({"v": refs}, "v")}
            result.results[fp] = EnrichmentResponse(
                fingerprint=fp,
                recommendation=_pick(entry, "recommendation"),
                code_fix=_pick(entry, "codeFix", "code_fix"),
                impact_description=_pick(entry, "impactDescription", "impact_description", "impactUser"),
                standard_refs=StandardRefs(
                    primary=_pick(refs, "primary", "rgaa"),
                    secondary=_pick(refs, "secondary", "wcag"),
                ),
            )

        for failure in failures if isinstance(failures, list) else []:
            if isinstance(failure, dict) and failure.get("fingerprint") in requested:
                fp = failure["fingerprint"]
                if fp not in result.results:
                    result.failures[fp] = str(failure.get("reason") or "AI reported a failure")

        for fp in requested:
            if fp not in result.results and fp not in result.failures:
                result.failures[fp] = "No result returned for fingerprint"

        logger.info(
            f"Enrichment batch: {len(result.results)} resolved, {len(result.failures)} failed"
        )
        return result
