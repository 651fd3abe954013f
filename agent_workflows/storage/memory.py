"""
In-Memory Conversation Store

Process-lifetime conversation storage. Everything is lost on restart.

Uses an asyncio lock so each operation (insert-if-absent, append, remove) is
atomic for concurrent async callers.
"""

import asyncio
import logging
from typing import Callable

from agent_workflows.errors import ConversationNotFound
from agent_workflows.storage.ports import (
    RESUMED_MARKER,
    ConversationRecord,
    ConversationStore,
    ConversationThread,
    ConversationTurn,
)

logger = logging.getLogger(__name__)


class InMemoryConversationStore(ConversationStore):
    """
    In-memory conversation storage.

    Uses dict with asyncio.Lock for thread-safety.
    """

    def __init__(self, thread_factory: Callable[[], ConversationThread] = ConversationThread):
        self._records: dict[str, ConversationRecord] = {}
        self._thread_factory = thread_factory
        self._lock = asyncio.Lock()

    async def get_or_create(
        self,
        conversation_id: str
    ) -> tuple[ConversationThread, list[ConversationTurn]]:
        async with self._lock:
            record = self._records.get(conversation_id)
            if record is None:
                record = ConversationRecord(
                    conversation_id=conversation_id,
                    thread=self._thread_factory(),
                )
                self._records[conversation_id] = record
                logger.info(f"Conversation created: {conversation_id}")
            return record.thread, list(record.transcript)

    async def get(self, conversation_id: str) -> ConversationRecord | None:
        async with self._lock:
            return self._records.get(conversation_id)

    async def append(self, conversation_id: str, role: str, text: str) -> None:
        async with self._lock:
            record = self._records.get(conversation_id)
            if record is None:
                record = ConversationRecord(
                    conversation_id=conversation_id,
                    thread=self._thread_factory(),
                )
                self._records[conversation_id] = record
            # New list so snapshots handed out earlier stay untouched
            record.transcript = record.transcript + [ConversationTurn(role=role, message=text)]

    async def save_thread(self, conversation_id: str, thread: ConversationThread) -> None:
        async with self._lock:
            record = self._records.get(conversation_id)
            if record is None:
                self._records[conversation_id] = ConversationRecord(
                    conversation_id=conversation_id,
                    thread=thread,
                )
            else:
                record.thread = thread

    async def export_thread(self, conversation_id: str) -> str:
        async with self._lock:
            record = self._records.get(conversation_id)
            if record is None:
                raise ConversationNotFound(conversation_id)
            record.serialized_thread = record.thread.serialize()
            return record.serialized_thread

    async def import_thread(
        self,
        conversation_id: str,
        serialized_thread: str
    ) -> ConversationThread:
        # Decode outside the lock; a malformed payload leaves the store untouched
        thread = ConversationThread.deserialize(serialized_thread)

        async with self._lock:
            record = self._records.get(conversation_id)
            if record is None:
                self._records[conversation_id] = ConversationRecord(
                    conversation_id=conversation_id,
                    thread=thread,
                    serialized_thread=serialized_thread,
                )
            else:
                record.thread = thread
                record.serialized_thread = serialized_thread
                if record.transcript:
                    record.transcript = record.transcript + [
                        ConversationTurn(role="system", message=RESUMED_MARKER)
                    ]

        logger.info(f"Conversation {conversation_id} resumed from thread {thread.thread_id}")
        return thread

    async def clear(self, conversation_id: str) -> None:
        async with self._lock:
            removed = self._records.pop(conversation_id, None)
        if removed is not None:
            logger.info(f"Conversation cleared: {conversation_id}")

    async def count(self) -> int:
        """Number of live conversations."""
        async with self._lock:
            return len(self._records)
