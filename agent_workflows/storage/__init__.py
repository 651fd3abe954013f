# Storage Layer
# Conversation memory behind a port so alternate backings can be injected
#
# This module provides:
# - ConversationStore port (ABC) and its record types
# - In-memory implementation (process-lifetime)

from .ports import (
    RESUMED_MARKER,
    ConversationRecord,
    ConversationStore,
    ConversationThread,
    ConversationTurn,
)
from .memory import InMemoryConversationStore

__all__ = [
    # Ports
    "RESUMED_MARKER",
    "ConversationRecord",
    "ConversationStore",
    "ConversationThread",
    "ConversationTurn",
    # Adapters
    "InMemoryConversationStore",
]
