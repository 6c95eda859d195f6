import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from a11y_engine.features.audit.schemas.scan import Scan, ScanProcessRequest
from a11y_engine.features.audit.services.comparison import ScanComparator
from a11y_engine.features.audit.services.pipeline import AuditPipeline
from a11y_engine.features.audit.services.report import scan_response
from a11y_engine.features.audit.services.repository import ScanRepository
from a11y_engine.features.audit.services.result_saver import ScanResultSaver
from a11y_engine.features.enrichment.services.cache import build_cache
from a11y_engine.features.enrichment.services.enricher import IssueEnricher
from a11y_engine.platform.db.session import get_db
from a11y_engine.platform.exceptions import ErrorCode
from a11y_engine.platform.response import api_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scans", tags=["scans"])


def get_audit_pipeline() -> AuditPipeline:
    """A fresh pipeline per request, with its own enrichment cache."""
    return AuditPipeline(IssueEnricher(build_cache()))


@router.post("/process", summary="Run the audit pipeline on a checker payload")
def process_scan(
    data: ScanProcessRequest,
    db: Session = Depends(get_db),
    pipeline: AuditPipeline = Depends(get_audit_pipeline),
):
    """
    Normalize, classify, group, enrich and score the findings of one page.

    The scan is saved even when a stage fails, so the partial issues stay
    queryable. A failed run answers 422 with the failing stage.
    """
    scan = Scan(url=data.url, campaign_id=data.campaign_id)
    result = pipeline.run(scan, data.payload, signals=data.signals, html=data.html)

    if data.persist:
        ScanResultSaver.save(db, result.scan)

    if not result.ok:
        return api_response(
            message=f"Scan pipeline failed at stage '{result.error.stage.value}': {result.error.message}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=ErrorCode.pipeline_failed.value,
            data={
                "scan_id": scan.id,
                "stage": result.error.stage.value,
                "error": result.error.message,
            },
        )

    return api_response(
        data=scan_response(result.scan),
        message="Scan processed successfully",
        status_code=status.HTTP_200_OK,
    )


@router.get("/{scan_id}", summary="Get a processed scan")
def get_scan(scan_id: str, db: Session = Depends(get_db)):
    scan = ScanRepository.get(db, scan_id)
    if scan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scan not found")

    return api_response(
        data=scan_response(scan),
        message="Scan retrieved successfully",
        status_code=status.HTTP_200_OK,
    )


@router.get("/{scan_id}/compare/{baseline_id}", summary="Compare a scan with an earlier one")
def compare_scans(scan_id: str, baseline_id: str, db: Session = Depends(get_db)):
    """Conformity, severity and issue-count differences, ``scan_id`` minus ``baseline_id``."""
    current = ScanRepository.get(db, scan_id)
    baseline = ScanRepository.get(db, baseline_id)
    if current is None or baseline is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scan not found")

    return api_response(
        data=ScanComparator.compare(baseline, current),
        message="Scans compared successfully",
        status_code=status.HTTP_200_OK,
    )
