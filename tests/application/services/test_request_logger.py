"""Tests for RequestLogger."""

import pytest

from application.services.request_logger import RequestLogger
from domain.models.request_log import RequestType, TokenUsage
from tests.fixtures.factories import InMemoryRequestLogRepository


class TestRequestLogger:
    """Test best-effort request logging."""

    @pytest.mark.asyncio
    async def test_entry_written(self, request_log_repository: InMemoryRequestLogRepository) -> None:
        logger = RequestLogger(request_log_repository)

        entry = await logger.log_async(
            model="test-model",
            request_type=RequestType.GENERAL,
            prompt="Hello",
            response="Hi",
            response_time_ms=12,
            tokens_used=TokenUsage(1, 1, 2),
            user_id="user-1",
            metadata={"conversation_id": "conv-1"},
        )

        assert request_log_repository.entries == [entry]
        data = entry.to_dict()
        assert data["request_type"] == "general"
        assert data["tokens_used"] == {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}

    @pytest.mark.asyncio
    async def test_long_text_truncated(self, request_log_repository: InMemoryRequestLogRepository) -> None:
        logger = RequestLogger(request_log_repository, max_text_length=10)

        entry = await logger.log_async("m", RequestType.REMIX, prompt="x" * 50, response="y" * 5, response_time_ms=1)

        assert entry.prompt == "x" * 10 + "..."
        assert entry.response == "y" * 5

    @pytest.mark.asyncio
    async def test_storage_failure_swallowed(self) -> None:
        logger = RequestLogger(InMemoryRequestLogRepository(fail=True))

        assert await logger.log_async("m", RequestType.GENERAL, prompt="p", response=None, response_time_ms=1) is None

    @pytest.mark.asyncio
    async def test_no_repository_is_noop(self) -> None:
        assert await RequestLogger(None).log_async("m", RequestType.GENERAL, "p", None, 1) is None
