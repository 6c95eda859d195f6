import enum
import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from a11y_engine.platform.response import api_response

logger = logging.getLogger(__name__)


class ErrorCode(str, enum.Enum):
    """Machine-readable ``error_code`` of error responses."""
    bad_request = "bad_request"
    not_found = "not_found"
    method_not_allowed = "method_not_allowed"
    validation_failed = "validation_failed"
    missing_scan_source = "missing_scan_source"
    pipeline_failed = "pipeline_failed"
    invalid_status_transition = "invalid_status_transition"
    taxonomy_unavailable = "taxonomy_unavailable"
    enrichment_failed = "enrichment_failed"
    internal_error = "internal_error"


HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.bad_request,
    status.HTTP_404_NOT_FOUND: ErrorCode.not_found,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.method_not_allowed,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorCode.validation_failed,
}


class TaxonomyLoadError(RuntimeError):
    """Raised when the taxonomy reference document is missing or malformed."""


class InvalidStatusTransition(ValueError):
    """Raised when a scan is moved along an edge its state machine does not allow."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move scan from '{current}' to '{target}'")


class EnrichmentError(Exception):
    """Raised by the AI gateway when a call fails for every requested fingerprint."""


class AIResponseError(EnrichmentError):
    """The AI collaborator answered, but not with JSON we can use."""


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code)
        if code is None:
            code = ErrorCode.internal_error if exc.status_code >= 500 else ErrorCode.bad_request
        return api_response(
            message=str(exc.detail) or "Error",
            status_code=exc.status_code,
            error_code=code.value,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": exc.errors()},
            error_code=ErrorCode.validation_failed.value,
        )

    @app.exception_handler(InvalidStatusTransition)
    async def status_transition_handler(request: Request, exc: InvalidStatusTransition):
        return api_response(
            message=str(exc),
            status_code=status.HTTP_409_CONFLICT,
            data={"current": exc.current, "target": exc.target},
            error_code=ErrorCode.invalid_status_transition.value,
        )

    @app.exception_handler(TaxonomyLoadError)
    async def taxonomy_error_handler(request: Request, exc: TaxonomyLoadError):
        logger.error(f"Taxonomy unavailable: {exc}")
        return api_response(
            message="Taxonomy reference is unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=ErrorCode.taxonomy_unavailable.value,
        )

    @app.exception_handler(EnrichmentError)
    async def enrichment_error_handler(request: Request, exc: EnrichmentError):
        logger.error(f"AI collaborator failure: {exc}")
        return api_response(
            message="AI collaborator request failed",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=ErrorCode.enrichment_failed.value,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=ErrorCode.internal_error.value,
        )
