"""Pytest configuration and shared fixtures for all tests.

This module provides:
- Test configuration and markers
- Repository fixtures (in-memory and mocked)
- Settings and auth fixtures
"""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from _pytest.config import Config

from api.services.auth_service import AuthService
from application.settings import Settings
from infrastructure.repositories import InMemoryConversationRepository
from tests.fixtures.factories import InMemoryRequestLogRepository

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config: Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (may use external services)")
    config.addinivalue_line("markers", "auth: Authentication/authorization tests")
    config.addinivalue_line("markers", "command: Command handler tests")
    config.addinivalue_line("markers", "query: Query handler tests")


# ============================================================================
# SETTINGS FIXTURES
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide settings isolated from the environment's defaults."""
    return Settings(
        jwt_secret="test-secret",  # pragma: allowlist secret
        jwt_audience=None,
        max_steps=None,
        tool_choice="auto",
        demo_response="demo mode",
    )


# ============================================================================
# REPOSITORY FIXTURES
# ============================================================================


@pytest.fixture
def conversation_repository() -> InMemoryConversationRepository:
    """Provide an in-memory conversation repository."""
    return InMemoryConversationRepository()


@pytest.fixture
def request_log_repository() -> InMemoryRequestLogRepository:
    return InMemoryRequestLogRepository()


@pytest.fixture
def mock_repository() -> MagicMock:
    """Provide a mock conversation repository for testing command/query handlers."""
    mock: MagicMock = MagicMock()
    mock.get_async = AsyncMock(return_value=None)
    mock.add_async = AsyncMock()
    mock.update_async = AsyncMock()
    mock.remove_async = AsyncMock(return_value=True)
    mock.get_by_user_async = AsyncMock(return_value=[])
    mock.get_recent_by_user_async = AsyncMock(return_value=[])
    return mock


# ============================================================================
# AUTH FIXTURES
# ============================================================================


@pytest.fixture
def auth_service(test_settings: Settings) -> AuthService:
    return AuthService(test_settings)


@pytest.fixture
def jwt_secret(test_settings: Settings) -> str:
    return test_settings.jwt_secret


# ============================================================================
# CLEANUP FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables after each test."""
    original_env: dict[str, Any] = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
