# Multi-Agent Workflow Orchestration
# LangGraph-based topologies driven through a streaming adapter
#
# This module provides:
# - Graph builders (chain, handoff star, round-robin)
# - Execution stream adapter and step segmenter
# - Handoff inference over step records
# - WorkflowOrchestrator facade and result models

from .graph_builder import (
    Topology,
    WorkflowGraph,
    WorkflowState,
    build_chain,
    build_handoff_star,
    build_round_robin,
    make_handoff_tool,
    terminate_after_turns,
)
from .handoff import HANDOFF_REASON, infer_handoffs
from .models import (
    AgentConfig,
    AgentStepResult,
    ConditionalRoutingResult,
    ConversationResult,
    ExecutionEvent,
    GroupChatMessage,
    GroupChatResult,
    HandoffEvent,
    HandoffResult,
    RoutingDecision,
    ToolAgentResult,
    ToolCallInfo,
    WorkflowResult,
    estimate_tokens,
)
from .orchestrator import WorkflowOrchestrator, specialist_name_from_classification
from .segmenter import StepSegmenter
from .settings import OrchestrationSettings, settings_from_env
from .stream import ExecutionStreamAdapter

__all__ = [
    # Graphs
    "Topology",
    "WorkflowGraph",
    "WorkflowState",
    "build_chain",
    "build_handoff_star",
    "build_round_robin",
    "make_handoff_tool",
    "terminate_after_turns",
    # Streaming
    "ExecutionStreamAdapter",
    "StepSegmenter",
    "HANDOFF_REASON",
    "infer_handoffs",
    # Models
    "AgentConfig",
    "AgentStepResult",
    "ConditionalRoutingResult",
    "ConversationResult",
    "ExecutionEvent",
    "GroupChatMessage",
    "GroupChatResult",
    "HandoffEvent",
    "HandoffResult",
    "RoutingDecision",
    "ToolAgentResult",
    "ToolCallInfo",
    "WorkflowResult",
    "estimate_tokens",
    # Facade
    "WorkflowOrchestrator",
    "specialist_name_from_classification",
    "OrchestrationSettings",
    "settings_from_env",
]
