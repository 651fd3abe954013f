"""
Orchestration settings read from the environment.
"""

import os

from pydantic import BaseModel, Field

from agent_workflows.orchestration.stream import DEFAULT_RECURSION_LIMIT

DEFAULT_EXPERIMENT_NAME = "customer-support-triage"


class OrchestrationSettings(BaseModel):
    """Tunables for the orchestrator."""
    recursion_limit: int = Field(
        default=DEFAULT_RECURSION_LIMIT,
        ge=1,
        description="LangGraph super-step ceiling per run"
    )
    experiment_name: str = Field(
        default=DEFAULT_EXPERIMENT_NAME,
        description="Experiment that chain runs are reported under"
    )


def settings_from_env() -> OrchestrationSettings:
    """
    Build settings from AGENTFLOW_* environment variables.

    Environment Variables:
        AGENTFLOW_RECURSION_LIMIT: Super-step ceiling (default: 100)
        AGENTFLOW_EXPERIMENT_NAME: Tracking experiment (default: customer-support-triage)
    """
    return OrchestrationSettings(
        recursion_limit=int(os.getenv("AGENTFLOW_RECURSION_LIMIT", str(DEFAULT_RECURSION_LIMIT))),
        experiment_name=os.getenv("AGENTFLOW_EXPERIMENT_NAME", DEFAULT_EXPERIMENT_NAME),
    )
