"""
Conversation Store Port

Abstract storage contract for long-lived conversational state.

Orchestration code depends only on this interface; adapters implement it and
are injected into the orchestrator:
- InMemoryConversationStore (process-lifetime, the default)
- anything externally persisted can be substituted without touching callers

Atomicity: each operation is atomic on its own. Two calls against the same
conversation id are NOT serialized with respect to each other; the last write
to a transcript or thread wins. Callers needing single-writer semantics must
serialize above the store.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from uuid import uuid4

from langchain_core.messages import BaseMessage, messages_from_dict, messages_to_dict
from pydantic import BaseModel

from agent_workflows.errors import DeserializationFailure

RESUMED_MARKER = "[Conversation resumed from saved state]"


class ConversationTurn(BaseModel):
    """One transcript entry."""
    role: str  # "user", "assistant", "system"
    message: str


# =============================================================================
# Memory Handle
# =============================================================================

@dataclass
class ConversationThread:
    """
    Opaque memory handle: the message history an agent continues from.

    The serialized form is provider-defined; callers must treat it as an
    uninterpreted string.
    """
    thread_id: str = field(default_factory=lambda: uuid4().hex)
    messages: list[BaseMessage] = field(default_factory=list)

    def serialize(self) -> str:
        return json.dumps({
            "thread_id": self.thread_id,
            "messages": messages_to_dict(self.messages),
        })

    @classmethod
    def deserialize(cls, data: str) -> "ConversationThread":
        """
        Decode a serialized thread.

        Raises:
            DeserializationFailure: If the payload is not a valid encoding
        """
        try:
            payload = json.loads(data)
            return cls(
                thread_id=str(payload["thread_id"]),
                messages=messages_from_dict(payload["messages"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise DeserializationFailure(f"Malformed conversation thread: {e}") from e


# =============================================================================
# Conversation Record
# =============================================================================

@dataclass
class ConversationRecord:
    """Stored state for one conversation id."""
    conversation_id: str
    thread: ConversationThread
    transcript: list[ConversationTurn] = field(default_factory=list)
    serialized_thread: str | None = None  # last export, cached


class ConversationStore(ABC):
    """
    Storage interface for conversation memory.

    Maps a conversation id to its memory handle and human-readable transcript.
    """

    @abstractmethod
    async def get_or_create(
        self,
        conversation_id: str
    ) -> tuple[ConversationThread, list[ConversationTurn]]:
        """
        Get the thread and transcript for a conversation, creating both if absent.

        Returns:
            (thread, copy of the transcript)
        """
        ...

    @abstractmethod
    async def get(self, conversation_id: str) -> ConversationRecord | None:
        """Get the full record for a conversation, or None."""
        ...

    @abstractmethod
    async def append(self, conversation_id: str, role: str, text: str) -> None:
        """
        Append a transcript entry. The transcript is created if missing.

        No size bound is enforced.
        """
        ...

    @abstractmethod
    async def save_thread(self, conversation_id: str, thread: ConversationThread) -> None:
        """Replace the memory handle bound to a conversation."""
        ...

    @abstractmethod
    async def export_thread(self, conversation_id: str) -> str:
        """
        Serialize the conversation's memory handle.

        Raises:
            ConversationNotFound: If no thread exists for the id
        """
        ...

    @abstractmethod
    async def import_thread(
        self,
        conversation_id: str,
        serialized_thread: str
    ) -> ConversationThread:
        """
        Bind a serialized thread to a (possibly new) conversation id.

        If the id already has a transcript, a system-role resumption marker is
        appended to it; otherwise an empty transcript is created.

        Raises:
            DeserializationFailure: If the payload cannot be decoded
        """
        ...

    @abstractmethod
    async def clear(self, conversation_id: str) -> None:
        """Remove thread, transcript and cached export. Idempotent."""
        ...
