from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from a11y_engine.api.v1.router import api_router
from a11y_engine.features.health.routes.health import router as health_router
from a11y_engine.platform.config import settings
from a11y_engine.platform.db.session import init_db
from a11y_engine.platform.exceptions import add_exception_handlers
from a11y_engine.platform.logger import get_logger

logger = get_logger("a11y_engine")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Aggregation, classification and remediation scheduling of accessibility findings",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Root endpoint for basic info
    @app.get("/", tags=["Info"])
    def root():
        return {
            "app_name": settings.APP_NAME,
            "description": "Turns raw accessibility findings into prioritized issues and a remediation plan.",
            "version": "1.0.0",
            "docs_url": "/docs",
            "api_base": "/api/v1",
        }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
