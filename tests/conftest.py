"""
Test configuration and fixtures for the A11y Audit Engine.

Environment variables are set before the application is imported so the
settings singleton picks them up. Every test gets a fresh in-memory SQLite
database and an AI client that never touches the network.
"""

import json
import os
import re
import tempfile
from typing import Generator
from unittest.mock import MagicMock

from dotenv import load_dotenv

load_dotenv()

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["ENRICHMENT_CACHE_BACKEND"] = "memory"
os.environ["CAMPAIGN_LOAD_WORKERS"] = "1"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="a11y-logs-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from a11y_engine.features.audit.schemas.issue import Issue, IssueSeverity, IssueSource
from a11y_engine.features.audit.services.pipeline import AuditPipeline
from a11y_engine.features.enrichment.services.cache import EnrichmentCache
from a11y_engine.features.enrichment.services.enricher import IssueEnricher
from a11y_engine.features.enrichment.services.gateway import AIGateway

FINGERPRINT_IN_PROMPT = re.compile(r'"fingerprint": "([0-9a-f]{64})"')


def make_completion(content: str):
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = content
    return completion


def make_ai_client(recommendation: str = "Add alt=\"Company logo\" to the <img> in the header.",
                   primary: str = None, secondary: str = None):
    """
    Mock OpenAI client answering every requested fingerprint with the same enrichment.

    The fingerprints are read back from the prompt, like a real model would.
    """
    client = MagicMock()

    def create(**kwargs):
        prompt = kwargs["messages"][-1]["content"]
        results = [
            {
                "fingerprint": fp,
                "recommendation": recommendation,
                "codeFix": "<img src=\"logo.png\" alt=\"Company logo\">",
                "impactDescription": "Screen reader users cannot identify the image.",
                "standardRefs": {"primary": primary, "secondary": secondary},
            }
            for fp in FINGERPRINT_IN_PROMPT.findall(prompt)
        ]
        return make_completion("```json\n" + json.dumps({"results": results, "failures": []}) + "\n```")

    client.chat.completions.create.side_effect = create
    return client


def make_issue(error_type="Missing alt", source=IssueSource.scanner, severity=IssueSeverity.critical,
               scope="https://example.com/", **kwargs) -> Issue:
    return Issue(error_type=error_type, source=source, severity=severity, scope=scope, **kwargs)


@pytest.fixture
def ai_client():
    return make_ai_client()


@pytest.fixture
def failing_ai_client():
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("connection refused")
    return client


@pytest.fixture
def enrichment_cache():
    return EnrichmentCache()


@pytest.fixture
def gateway(ai_client):
    return AIGateway(client=ai_client, max_retries=1, sleep=lambda _: None)


@pytest.fixture
def pipeline(enrichment_cache, gateway):
    return AuditPipeline(IssueEnricher(enrichment_cache, gateway=gateway, max_workers=2))


@pytest.fixture
def offline_pipeline(enrichment_cache, failing_ai_client):
    gateway = AIGateway(client=failing_ai_client, max_retries=1, sleep=lambda _: None)
    return AuditPipeline(IssueEnricher(enrichment_cache, gateway=gateway, max_workers=2))


@pytest.fixture
def session_factory():
    """Fresh in-memory database shared by every session of one test."""
    from a11y_engine.platform.db.base import Base
    import a11y_engine.features.audit.models  # noqa: F401
    import a11y_engine.features.remediation.models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, autocommit=False)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from a11y_engine.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app, session_factory, offline_pipeline) -> Generator[TestClient, None, None]:
    """
    Test client bound to the per-test database and an offline pipeline.

    Dependency overrides are removed again after each test.
    """
    from a11y_engine.features.audit.routes.scans import get_audit_pipeline
    from a11y_engine.platform.db.session import get_db, get_session_factory

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_session_factory] = lambda: session_factory
    test_app.dependency_overrides[get_audit_pipeline] = lambda: offline_pipeline

    with TestClient(test_app) as test_client:
        yield test_client

    test_app.dependency_overrides.clear()
