"""
Shared test fixtures.

ScriptedChatModel stands in for the completion provider: every model call
consumes the next scripted reply, streams its text word by word and can emit
tool calls, hang (for cancellation tests) or raise.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterator

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import Field

from agent_workflows.storage import InMemoryConversationStore
from agent_workflows.orchestration import WorkflowOrchestrator


@dataclass
class ScriptedReply:
    """One scripted model response."""
    text: str = ""
    tool_calls: list[dict[str, Any]] = field(default_factory=list)  # {"name", "args"}
    hang: bool = False  # block forever after streaming the text
    streamed: asyncio.Event | None = None  # set once the text has been streamed


def _words(text: str) -> list[str]:
    return re.findall(r"\S+\s*|\s+", text)


class ScriptedChatModel(BaseChatModel):
    """Deterministic chat model driven by a list of replies."""

    script: list[Any] = Field(default_factory=list)
    calls: list[list[BaseMessage]] = Field(default_factory=list)
    bound_tools: list[list[str]] = Field(default_factory=list)
    cursor: int = 0

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools.append([getattr(tool, "name", str(tool)) for tool in tools])
        return self

    def system_prompts(self) -> list[str]:
        """System instructions of every call, in call order."""
        return [
            messages[0].content if messages and isinstance(messages[0], SystemMessage) else ""
            for messages in self.calls
        ]

    def _next(self, messages: list[BaseMessage]) -> ScriptedReply:
        self.calls.append(list(messages))
        if self.cursor >= len(self.script):
            raise RuntimeError(f"Script exhausted after {self.cursor} calls")
        item = self.script[self.cursor]
        self.cursor += 1
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, str):
            return ScriptedReply(text=item)
        return item

    def _tool_calls(self, reply: ScriptedReply) -> list[dict[str, Any]]:
        return [
            {"name": call["name"], "args": call.get("args", {}), "id": f"call_{self.cursor}_{i}"}
            for i, call in enumerate(reply.tool_calls)
        ]

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        reply = self._next(messages)
        message = AIMessage(content=reply.text, tool_calls=self._tool_calls(reply))
        return ChatResult(generations=[ChatGeneration(message=message)])

    def _stream(self, messages, stop=None, run_manager=None, **kwargs) -> Iterator[ChatGenerationChunk]:
        reply = self._next(messages)
        for word in _words(reply.text):
            yield ChatGenerationChunk(message=AIMessageChunk(content=word))
        for chunk in self._tool_call_chunks(reply):
            yield chunk

    async def _astream(
        self, messages, stop=None, run_manager=None, **kwargs
    ) -> AsyncIterator[ChatGenerationChunk]:
        reply = self._next(messages)
        for word in _words(reply.text):
            await asyncio.sleep(0)
            yield ChatGenerationChunk(message=AIMessageChunk(content=word))
        if reply.streamed is not None:
            reply.streamed.set()
        if reply.hang:
            await asyncio.Event().wait()
        for chunk in self._tool_call_chunks(reply):
            yield chunk

    def _tool_call_chunks(self, reply: ScriptedReply) -> list[ChatGenerationChunk]:
        return [
            ChatGenerationChunk(
                message=AIMessageChunk(
                    content="",
                    tool_call_chunks=[{
                        "name": call["name"],
                        "args": json.dumps(call["args"]),
                        "id": call["id"],
                        "index": index,
                    }],
                )
            )
            for index, call in enumerate(self._tool_calls(reply))
        ]


@pytest.fixture
def scripted():
    """Factory for a ScriptedChatModel over the given replies."""
    def make(*script: Any) -> ScriptedChatModel:
        return ScriptedChatModel(script=list(script))
    return make


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def orchestrator_for(store):
    """Factory for an orchestrator over a scripted model and the shared store."""
    def make(model: ScriptedChatModel) -> WorkflowOrchestrator:
        return WorkflowOrchestrator(model, store=store)
    return make
