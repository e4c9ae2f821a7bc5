"""Integration layer repositories package.

MongoDB implementations of the abstract repositories in domain/repositories/.
"""

from .motor_conversation_repository import MotorConversationRepository
from .motor_request_log_repository import MotorRequestLogRepository

__all__ = [
    "MotorConversationRepository",
    "MotorRequestLogRepository",
]
