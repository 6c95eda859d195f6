from fastapi import APIRouter, HTTPException, status

from a11y_engine.features.taxonomy.services.reference import get_taxonomy
from a11y_engine.platform.response import api_response

router = APIRouter(prefix="/taxonomy", tags=["taxonomy"])


@router.get("/topics", summary="List taxonomy topics and criteria")
def list_topics():
    taxonomy = get_taxonomy()
    return api_response(
        data={
            "version": taxonomy.version,
            "counts": taxonomy.counts(),
            "topics": taxonomy.all_topics(),
        },
        message="Taxonomy retrieved successfully",
    )


@router.get("/criteria/{number}", summary="Get one criterion")
def get_criterion(number: str):
    criterion = get_taxonomy().get_criterion(number)
    if criterion is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Criterion not found")
    return api_response(data=criterion, message="Criterion retrieved successfully")
