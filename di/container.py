"""Centralized dependency injection container."""
from __future__ import annotations

from dependency_injector import containers, providers

from infra.completions import OpenAICompletionProducer
from infra.resources import DatabaseResource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Process-lifetime infrastructure, configured from ``core.settings``."""

    config = providers.Configuration()

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=config.DATABASE.DATABASE_URL,
    )

    # Upstream LLM
    completion_producer = providers.Singleton(
        OpenAICompletionProducer,
        api_key=config.OPENAI.OPENAI_API_KEY,
        base_url=config.OPENAI.OPENAI_BASE_URL,
        timeout=config.OPENAI.OPENAI_TIMEOUT_SECONDS,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    config = providers.Configuration()
    infrastructure = providers.DependenciesContainer()

    conversation_store = providers.Singleton(
        "api.features.conversation.repository.ConversationStore",
        database=infrastructure.database,
        default_title=config.RELAY.DEFAULT_SESSION_TITLE,
    )

    conversation_assembler = providers.Singleton(
        "api.features.conversation.assembler.ConversationAssembler",
        store=conversation_store,
    )

    # One relay per turn: it carries the turn's state machine
    stream_relay = providers.Factory(
        "api.features.chat.relay.StreamRelay",
        store=conversation_store,
        assembler=conversation_assembler,
        producer=infrastructure.completion_producer,
        default_model=config.OPENAI.OPENAI_MODEL,
        idle_timeout=config.RELAY.UPSTREAM_IDLE_TIMEOUT_SECONDS,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    conversation_controller = providers.Factory(
        "api.features.conversation.controller.ConversationController",
        store=services.conversation_store,
    )

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        relay=services.stream_relay,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.features.conversation.router",
            "api.features.chat.router",
        ]
    )

    config = providers.Configuration()

    infrastructure = providers.Container(InfrastructureContainer, config=config)
    services = providers.Container(
        ServiceContainer, config=config, infrastructure=infrastructure
    )
    controllers = providers.Container(ControllerContainer, services=services)
