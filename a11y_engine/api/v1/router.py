from fastapi import APIRouter

from a11y_engine.features.audit.routes.scans import router as scans_router
from a11y_engine.features.health.routes.health import router as health_router
from a11y_engine.features.remediation.routes.plans import router as plans_router
from a11y_engine.features.taxonomy.routes.taxonomy import router as taxonomy_router

api_router = APIRouter()

# Register all feature routes
api_router.include_router(scans_router)
api_router.include_router(plans_router)
api_router.include_router(taxonomy_router)
api_router.include_router(health_router)
