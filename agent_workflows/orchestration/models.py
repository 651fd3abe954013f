"""
Orchestration Models

Events observed on the execution stream and the results handed back to
callers for every workflow pattern.

Design Principles:
- Events and step records are immutable once created
- Token counts are estimates (ceil(characters / 4)), never billed usage
- Every result reports total tokens as the sum over its step records
"""

import math
from typing import Any, Sequence

from pydantic import BaseModel, Field

from agent_workflows.storage.ports import ConversationTurn


def estimate_tokens(text: str) -> int:
    """Deterministic token estimate: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


# =============================================================================
# Stream Events
# =============================================================================

class ToolCallInfo(BaseModel):
    """A tool invocation made by an agent during its turn."""
    tool_name: str
    arguments: str = Field(description="JSON-encoded arguments")
    result: str

    class Config:
        frozen = True


class ExecutionEvent(BaseModel):
    """
    One identity-tagged fragment of a running workflow.

    ``partial_text`` is None for fragments that carry no text (a tool call, or
    an agent that hands off without speaking).
    """
    executor_id: str
    partial_text: str | None = None
    tool_call: ToolCallInfo | None = None

    class Config:
        frozen = True

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExecutionEvent":
        """Build an event from a payload written by an agent node."""
        tool_call = payload.get("tool_call")
        return cls(
            executor_id=payload.get("executor") or "Unknown",
            partial_text=payload.get("text"),
            tool_call=ToolCallInfo(**tool_call) if tool_call else None,
        )


# =============================================================================
# Step Records
# =============================================================================

class AgentStepResult(BaseModel):
    """A finalized per-agent contribution within a run."""
    agent_name: str
    input: str
    output: str
    tokens_used: int
    execution_time_ms: int

    class Config:
        frozen = True


class HandoffEvent(BaseModel):
    """A transfer of control between two agents, inferred from step records."""
    from_agent: str
    to_agent: str
    reason: str

    class Config:
        frozen = True


# =============================================================================
# Workflow Inputs and Results
# =============================================================================

class AgentConfig(BaseModel):
    """Name and instructions for one member of a sequential workflow."""
    name: str
    instructions: str


class WorkflowResult(BaseModel):
    """Result of a sequential (chain) workflow."""
    final_response: str
    agent_results: list[AgentStepResult] = Field(default_factory=list)
    total_tokens: int = 0
    execution_time_ms: int = 0
    cancelled: bool = Field(
        default=False,
        description="True when the caller cancelled the run; agent_results holds what completed"
    )

    @classmethod
    def from_steps(
        cls,
        steps: Sequence[AgentStepResult],
        execution_time_ms: int,
        cancelled: bool = False,
    ) -> "WorkflowResult":
        return cls(
            final_response=steps[-1].output if steps else "",
            agent_results=list(steps),
            total_tokens=sum(step.tokens_used for step in steps),
            execution_time_ms=execution_time_ms,
            cancelled=cancelled,
        )


class ToolAgentResult(BaseModel):
    """Result of a single tool-calling agent run."""
    response: str
    tool_calls: list[ToolCallInfo] = Field(default_factory=list)
    total_tokens: int = 0
    execution_time_ms: int = 0
    cancelled: bool = False


class ConversationResult(BaseModel):
    """Result of one conversation turn."""
    turns: list[ConversationTurn] = Field(default_factory=list)
    serialized_thread: str | None = None
    total_tokens: int = 0
    execution_time_ms: int = 0
    cancelled: bool = False


class RoutingDecision(BaseModel):
    """Which specialist a classifier routed to, and the category it implies."""
    detected_category: str
    selected_agent: str


class ConditionalRoutingResult(BaseModel):
    """Result of a classifier-routed workflow."""
    routing: RoutingDecision
    final_response: str
    agent_results: list[AgentStepResult] = Field(default_factory=list)
    total_tokens: int = 0
    execution_time_ms: int = 0
    cancelled: bool = False


class HandoffResult(BaseModel):
    """Result of a handoff-star workflow."""
    handoffs: list[HandoffEvent] = Field(default_factory=list)
    final_response: str
    agent_results: list[AgentStepResult] = Field(default_factory=list)
    total_tokens: int = 0
    execution_time_ms: int = 0
    cancelled: bool = False


class GroupChatMessage(BaseModel):
    """One turn of a round-robin discussion."""
    agent_name: str
    message: str
    turn_number: int


class GroupChatResult(BaseModel):
    """
    Result of a round-robin group discussion.

    ``total_tokens`` covers the participants' turns only; the moderator's
    synthesis is reported separately in ``consensus_tokens``.
    """
    messages: list[GroupChatMessage] = Field(default_factory=list)
    final_consensus: str
    total_tokens: int = 0
    consensus_tokens: int = 0
    execution_time_ms: int = 0
    cancelled: bool = False
