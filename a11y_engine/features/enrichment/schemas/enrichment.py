"""
Enrichment Schemas

Request/response contract with the AI collaborator and the cached payload.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class StandardRefs(BaseModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None


class Enrichment(BaseModel):
    """Remediation guidance stored under one fingerprint."""
    recommendation: Optional[str] = None
    code_fix: Optional[str] = None
    impact_description: Optional[str] = None
    primary_criterion: Optional[str] = None
    secondary_criterion: Optional[str] = None


class EnrichmentRequest(BaseModel):
    fingerprint: str
    error_type: str
    sample_context: Optional[str] = None


class EnrichmentResponse(BaseModel):
    fingerprint: str
    recommendation: Optional[str] = None
    code_fix: Optional[str] = None
    impact_description: Optional[str] = None
    standard_refs: StandardRefs = Field(default_factory=StandardRefs)

    def to_enrichment(self) -> Enrichment:
        return Enrichment(
            recommendation=self.recommendation,
            code_fix=self.code_fix,
            impact_description=self.impact_description,
            primary_criterion=self.standard_refs.primary,
            secondary_criterion=self.standard_refs.secondary,
        )


class EnrichmentBatchResult(BaseModel):
    """
    Outcome of one gateway call.

    Every requested fingerprint ends up in exactly one of ``results`` or
    ``failures``; a fingerprint missing from the AI answer is a failure.
    """
    results: Dict[str, EnrichmentResponse] = Field(default_factory=dict)
    failures: Dict[str, str] = Field(default_factory=dict)


class CacheStats(BaseModel):
    hits: int
    misses: int
    total: int
    hit_rate: float
    size: int


class EnrichmentReport(BaseModel):
    enriched: int = 0
    from_cache: int = 0
    fallback: int = 0
    ai_calls: int = 0
    failed_fingerprints: List[str] = Field(default_factory=list)
