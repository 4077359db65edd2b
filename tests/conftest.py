"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any liveboard import so the global
settings resolve to the in-memory backends.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("EVENTS_BACKEND", "local")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from liveboard.adapters.cache.in_memory import InMemoryViewCache
from liveboard.adapters.events.local import LocalEventBus
from liveboard.adapters.store.in_memory import InMemoryQuestionStore
from liveboard.core.app_factory import create_app
from liveboard.services.question_service import QuestionService


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client running the app lifespan with a fresh in-memory container."""
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store() -> InMemoryQuestionStore:
    return InMemoryQuestionStore()


@pytest.fixture
def cache() -> InMemoryViewCache:
    return InMemoryViewCache(ttl_seconds=30)


@pytest.fixture
def bus() -> LocalEventBus:
    return LocalEventBus()


@pytest.fixture
def service(store: InMemoryQuestionStore, cache: InMemoryViewCache, bus: LocalEventBus) -> QuestionService:
    return QuestionService(store=store, cache=cache, bus=bus)
