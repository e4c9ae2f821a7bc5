"""Tools the service offers to the model without any tool provider.

``get_current_time`` is static and shared by every request.
``list_recent_conversations`` is built per request and bound to the caller,
so the model can only ever see the current user's conversations.
"""

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from application.services.tool_aggregator import RequestToolFactory, ToolRequestContext
from domain.models.tool import ToolDescriptor
from domain.repositories.conversation_repository import ConversationRepository

logger = logging.getLogger(__name__)

MAX_LISTED_CONVERSATIONS = 20


async def get_current_time(args: dict[str, Any]) -> dict[str, Any]:
    """Return the current time in the requested IANA timezone (UTC by default)."""
    timezone = args.get("timezone") or "UTC"
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {timezone}") from e
    now = datetime.now(zone)
    return {
        "timezone": timezone,
        "iso": now.isoformat(),
        "formatted": now.strftime("%A, %d %B %Y %H:%M:%S %Z"),
    }


def create_static_tools() -> dict[str, ToolDescriptor]:
    tool = ToolDescriptor(
        name="get_current_time",
        description="Get the current date and time. Use it whenever the answer depends on today's date or the time.",
        invoke=get_current_time,
        parameters={
            "type": "object",
            "properties": {
                "timezone": {
                    "type": "string",
                    "description": "IANA timezone name such as 'Europe/Paris'. Defaults to UTC.",
                }
            },
        },
    )
    return {tool.name: tool}


def create_request_tool_factory(repository: ConversationRepository) -> RequestToolFactory:
    """Build the factory producing caller-bound tools for each request."""

    def factory(context: ToolRequestContext) -> dict[str, ToolDescriptor]:
        async def list_recent_conversations(args: dict[str, Any]) -> dict[str, Any]:
            requested = args.get("limit")
            limit = max(1, min(int(requested) if requested is not None else 5, MAX_LISTED_CONVERSATIONS))
            current_id = context.conversation_id
            # One extra row covers the current conversation being filtered out.
            conversations = await repository.get_recent_by_user_async(context.user_id, limit=limit + 1)
            earlier = [c for c in conversations if c.id() != current_id][:limit]
            return {
                "conversations": [
                    {
                        "id": c.id(),
                        "title": c.state.title,
                        "updatedAt": c.state.updated_at.isoformat() if c.state.updated_at else None,
                        "turnCount": len(c.state.turns),
                    }
                    for c in earlier
                ]
            }

        tool = ToolDescriptor(
            name="list_recent_conversations",
            description="List the user's most recent earlier conversations with their titles.",
            invoke=list_recent_conversations,
            parameters={
                "type": "object",
                "properties": {
                    "limit": {
                        "type": "integer",
                        "description": f"How many conversations to return (1-{MAX_LISTED_CONVERSATIONS}).",
                        "minimum": 1,
                        "maximum": MAX_LISTED_CONVERSATIONS,
                    }
                },
            },
            source="request",
        )
        return {tool.name: tool}

    return factory
