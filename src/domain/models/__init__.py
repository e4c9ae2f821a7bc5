"""Domain value objects and models."""

from domain.models.attachment import Attachment, AttachmentRecord
from domain.models.request_log import RequestLogEntry, RequestType, TokenUsage
from domain.models.tool import ToolDescriptor, ToolInvoker
from domain.models.turn import ContentPart, ContentPartType, Turn, TurnRole

__all__ = [
    "Attachment",
    "AttachmentRecord",
    "ContentPart",
    "ContentPartType",
    "RequestLogEntry",
    "RequestType",
    "TokenUsage",
    "ToolDescriptor",
    "ToolInvoker",
    "Turn",
    "TurnRole",
]
