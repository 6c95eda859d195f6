from fastapi import APIRouter, status

from a11y_engine.features.taxonomy.services.reference import get_taxonomy
from a11y_engine.platform.config import settings
from a11y_engine.platform.response import api_response

router = APIRouter()


@router.get("/health", tags=["health"])
def health_check():
    counts = get_taxonomy().counts()
    return api_response(
        data={"status": "ok", "service": settings.APP_NAME, "taxonomy_criteria": counts.criteria},
        message="Service is healthy",
        status_code=status.HTTP_200_OK,
    )
