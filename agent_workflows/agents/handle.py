"""
Agent Handle Model

A named, instructed binding to the shared chat model, optionally carrying
tools and a description used when other agents route to it.

Handles are immutable and cheap: every orchestration call builds its own set.
Only the chat model underneath is shared across calls.
"""

from uuid import uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field, field_validator


class AgentHandle(BaseModel):
    """
    One agent taking part in a workflow graph.

    The identity doubles as the graph node name, so it is what the execution
    stream reports for every fragment this agent produces.
    """

    identity: str = Field(
        ...,
        description="Unique name of the agent inside a workflow graph"
    )
    instructions: str = Field(
        ...,
        description="System instructions the agent runs with"
    )
    description: str | None = Field(
        default=None,
        description="What the agent handles; routers see it when choosing a specialist"
    )
    tools: tuple[BaseTool, ...] = Field(
        default=(),
        description="Callable tools the agent may invoke"
    )
    model: BaseChatModel = Field(
        ...,
        repr=False,
        description="Shared completion capability"
    )

    class Config:
        frozen = True
        arbitrary_types_allowed = True

    @field_validator("instructions")
    @classmethod
    def _instructions_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Agent instructions cannot be empty")
        return value

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tools]


def create_agent(
    model: BaseChatModel,
    instructions: str,
    identity: str | None = None,
    description: str | None = None,
    tools: list[BaseTool] | tuple[BaseTool, ...] | None = None,
) -> AgentHandle:
    """
    Build an agent handle.

    Pure and local: nothing is sent to the provider until the agent first runs.

    Args:
        model: Shared chat model the agent completes with
        instructions: Non-empty system instructions
        identity: Agent name; a generated ``agent_<hex>`` name is used when omitted
        description: Optional routing description
        tools: Optional tools to bind

    Returns:
        The immutable AgentHandle

    Raises:
        ValueError: If instructions are empty
    """
    return AgentHandle(
        identity=identity or f"agent_{uuid4().hex[:8]}",
        instructions=instructions,
        description=description,
        tools=tuple(tools or ()),
        model=model,
    )
