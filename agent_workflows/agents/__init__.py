"""
Agents

Agent handles, the turn runner that streams them, and the demo account tools.
"""

from agent_workflows.agents.handle import AgentHandle, create_agent
from agent_workflows.agents.runner import AgentTurn, chunk_text, run_agent_turn
from agent_workflows.agents.account_tools import (
    ACCOUNT_TOOLS,
    get_account_balance,
    get_account_info,
    get_recent_transactions,
)

__all__ = [
    "AgentHandle",
    "create_agent",
    "AgentTurn",
    "chunk_text",
    "run_agent_turn",
    "ACCOUNT_TOOLS",
    "get_account_balance",
    "get_account_info",
    "get_recent_transactions",
]
