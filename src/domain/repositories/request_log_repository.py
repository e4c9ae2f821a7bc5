"""Abstract append-only store for request log entries."""

from abc import ABC, abstractmethod

from domain.models.request_log import RequestLogEntry


class RequestLogRepository(ABC):
    """Append-only sink for RequestLogEntry records.

    Implementation: MotorRequestLogRepository
    """

    @abstractmethod
    async def add_async(self, entry: RequestLogEntry) -> None:
        """Persist a request log entry."""
        pass
