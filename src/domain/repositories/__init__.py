"""Domain repositories package.

Contains abstract repository interfaces. Implementations live in
src/integration/repositories/ and src/infrastructure/.
"""

from domain.repositories.attachment_store import AttachmentStore
from domain.repositories.conversation_repository import ConversationRepository
from domain.repositories.request_log_repository import RequestLogRepository

__all__: list[str] = [
    "AttachmentStore",
    "ConversationRepository",
    "RequestLogRepository",
]
