"""
Handoff inference.

The execution stream carries no explicit "handoff decided" signal, so transfers
are derived from consecutive step records whose agent differs.
"""

from typing import Sequence

from agent_workflows.orchestration.models import AgentStepResult, HandoffEvent

HANDOFF_REASON = "Routed by handoff workflow"


def infer_handoffs(
    steps: Sequence[AgentStepResult],
    reason: str = HANDOFF_REASON,
) -> list[HandoffEvent]:
    """One HandoffEvent per adjacent pair of steps with different agents."""
    return [
        HandoffEvent(from_agent=previous.agent_name, to_agent=current.agent_name, reason=reason)
        for previous, current in zip(steps, steps[1:])
        if previous.agent_name != current.agent_name
    ]
