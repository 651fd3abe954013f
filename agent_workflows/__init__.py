# Agent Workflows - multi-agent orchestration over LangGraph
# Chains, handoff stars and round-robin groups with streamed step segmentation

__version__ = "0.1.0"

# Re-export commonly used components for convenience
from agent_workflows.errors import (
    WorkflowError,
    InvalidTopology,
    CompletionFailure,
    ConversationNotFound,
    DeserializationFailure,
)

from agent_workflows.agents import AgentHandle, create_agent

from agent_workflows.orchestration import (
    AgentConfig,
    WorkflowOrchestrator,
    WorkflowResult,
    build_chain,
    build_handoff_star,
    build_round_robin,
)

from agent_workflows.storage import ConversationStore, InMemoryConversationStore

__all__ = [
    "__version__",
    # Errors
    "WorkflowError",
    "InvalidTopology",
    "CompletionFailure",
    "ConversationNotFound",
    "DeserializationFailure",
    # Agents
    "AgentHandle",
    "create_agent",
    # Orchestration
    "AgentConfig",
    "WorkflowOrchestrator",
    "WorkflowResult",
    "build_chain",
    "build_handoff_star",
    "build_round_robin",
    # Storage
    "ConversationStore",
    "InMemoryConversationStore",
]
