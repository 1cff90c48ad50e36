"""Entity registry to ensure SQLAlchemy loads all table metadata.

Import all entity modules here so schema creation can discover them.
"""
# Import base first to expose BaseEntity.metadata
from api.shared.entities.base import BaseEntity  # noqa: F401

# Feature: Conversation
from api.features.conversation.entities.session import ChatSession  # noqa: F401
from api.features.conversation.entities.message import ChatMessage  # noqa: F401
