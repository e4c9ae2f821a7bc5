"""Conversation Host main application entry point with Neuroglia framework."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from neuroglia.data.infrastructure.mongo import MotorRepository
from neuroglia.hosting.web import SubAppConfig, WebApplicationBuilder
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.observability import Observability
from neuroglia.serialization.json import JsonSerializer

from api.services.auth_service import AuthService
from application.services.chat_service import ChatService
from application.settings import app_settings, configure_logging
from domain.entities import Conversation
from domain.repositories import ConversationRepository
from infrastructure.adapters.openai_llm_provider import OpenAiLlmProvider
from infrastructure.file_system_attachment_store import FileSystemAttachmentStore
from infrastructure.llm_provider_factory import LlmProviderFactory
from infrastructure.mcp.connection_manager import ToolProviderConnectionService
from integration.repositories import MotorConversationRepository, MotorRequestLogRepository

configure_logging(log_level=app_settings.log_level)
log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the Conversation Host application.

    The REST API, including the streamed prompt endpoint, is mounted under
    the /api prefix.

    Returns:
        Configured FastAPI application with Neuroglia framework
    """
    log.debug("🚀 Creating Conversation Host application...")

    builder = WebApplicationBuilder(app_settings=app_settings)

    # Configure core Neuroglia services
    Mediator.configure(builder, ["application.commands", "application.queries"])
    Mapper.configure(builder, ["application.commands", "application.queries", "integration.models"])
    JsonSerializer.configure(builder, ["domain.entities", "domain.models", "integration.models"])
    Observability.configure(builder)

    # Conversations are persisted directly to MongoDB
    MotorRepository.configure(
        builder,
        entity_type=Conversation,
        key_type=str,
        database_name=app_settings.database_name,
        collection_name="conversations",
        domain_repository_type=ConversationRepository,
        implementation_type=MotorConversationRepository,
    )

    _configure_infrastructure_services(builder)

    builder.add_sub_app(
        SubAppConfig(
            path="/api",
            name="api",
            title=f"{app_settings.app_name} API",
            description="Streaming conversation API with JWT bearer authentication",
            version=app_settings.app_version,
            controllers=["api.controllers"],
            docs_url="/docs",
        )
    )

    app = builder.build_app_with_lifespan(
        title=app_settings.app_name,
        description="Streaming conversation orchestrator with tool-provider integration",
        version=app_settings.app_version,
        debug=app_settings.debug,
    )

    AuthService.configure_middleware(app)

    if app_settings.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    log.info("✅ Conversation Host application created successfully!")
    log.info("📊 Access points:")
    log.info(f"   - API: http://localhost:{app_settings.app_port}/api")
    log.info(f"   - API Docs: http://localhost:{app_settings.app_port}/api/docs")
    return app


def _configure_infrastructure_services(builder: WebApplicationBuilder) -> None:
    """Configure infrastructure services in the DI container.

    Args:
        builder: The WebApplicationBuilder
    """
    log.info("🔧 Configuring infrastructure services...")

    AuthService.configure(builder)

    # Default generation capability (only when enabled and keyed)
    OpenAiLlmProvider.configure(builder)
    # Request-scoped capabilities built from caller-supplied keys
    LlmProviderFactory.configure(builder)

    ToolProviderConnectionService.configure(builder)
    MotorRequestLogRepository.configure(builder)
    FileSystemAttachmentStore.configure(builder)

    ChatService.configure(builder)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        reload=app_settings.debug,
    )
