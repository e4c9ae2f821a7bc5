"""Best-effort request logging."""

import logging
from typing import Any

from domain.models.request_log import RequestLogEntry, RequestType, TokenUsage
from domain.repositories.request_log_repository import RequestLogRepository

logger = logging.getLogger(__name__)


class RequestLogger:
    """Writes one RequestLogEntry per generation call.

    Logging never fails a request: storage errors are logged and dropped.
    """

    def __init__(self, repository: RequestLogRepository | None, max_text_length: int = 2000) -> None:
        self._repository = repository
        self._max_text_length = max_text_length

    def truncate(self, text: str | None) -> str | None:
        if text is None or len(text) <= self._max_text_length:
            return text
        return text[: self._max_text_length] + "..."

    async def log_async(
        self,
        model: str,
        request_type: RequestType,
        prompt: str,
        response: str | None,
        response_time_ms: int,
        tokens_used: TokenUsage | None = None,
        error: str | None = None,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> RequestLogEntry | None:
        """Record a request. Returns the entry written, or None when nothing was stored."""
        if self._repository is None:
            return None
        entry = RequestLogEntry(
            model=model,
            request_type=request_type,
            prompt=self.truncate(prompt) or "",
            response=self.truncate(response),
            response_time_ms=response_time_ms,
            tokens_used=tokens_used,
            error=error,
            user_id=user_id,
            metadata=metadata or {},
        )
        try:
            await self._repository.add_async(entry)
        except Exception as e:
            logger.warning(f"Failed to write request log entry {entry.id}: {e}")
            return None
        return entry
