"""
Workflow Run Reporter

Forwards summary metrics of a finished chain run to MLflow, off the critical
path. Reporting is fire-and-forget: ``launch`` returns a detached task whose
failure is logged and discarded, so tracking problems never reach the caller
that already holds the orchestration result.
"""

import asyncio
import logging
import os

from pydantic import BaseModel, Field

from agent_workflows.orchestration.models import WorkflowResult
from agent_workflows.orchestration.settings import DEFAULT_EXPERIMENT_NAME
from agent_workflows.tracking.mlflow_client import MlflowClient, MlflowError

logger = logging.getLogger(__name__)

DEFAULT_MLFLOW_URL = "http://localhost:5000"
INPUT_PREVIEW_LENGTH = 100


class TrackingSettings(BaseModel):
    mlflow_url: str = Field(default=DEFAULT_MLFLOW_URL, description="MLflow tracking server base URL")
    timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")


def tracking_settings_from_env() -> TrackingSettings:
    """
    Environment Variables:
        AGENTFLOW_MLFLOW_URL: Tracking server (default: http://localhost:5000)
        AGENTFLOW_MLFLOW_TIMEOUT: Request timeout in seconds (default: 10)
    """
    return TrackingSettings(
        mlflow_url=os.getenv("AGENTFLOW_MLFLOW_URL", DEFAULT_MLFLOW_URL),
        timeout=float(os.getenv("AGENTFLOW_MLFLOW_TIMEOUT", "10.0")),
    )


def normalize_agent_key(agent_name: str) -> str:
    """Metric key prefix for an agent: lower-cased, spaces as underscores."""
    return agent_name.lower().replace(" ", "_")


def input_preview(text: str) -> str:
    if len(text) > INPUT_PREVIEW_LENGTH:
        return text[:INPUT_PREVIEW_LENGTH] + "..."
    return text


class WorkflowRunReporter:
    """Reports chain-run summaries to an MLflow experiment."""

    def __init__(self, client: MlflowClient, experiment_name: str = DEFAULT_EXPERIMENT_NAME):
        self._client = client
        self._experiment_name = experiment_name
        self._tasks: set[asyncio.Task] = set()

    async def _experiment_id(self) -> str:
        try:
            experiment = await self._client.get_experiment_by_name(self._experiment_name)
            return experiment.experiment_id
        except MlflowError as e:
            logger.debug(f"Experiment lookup failed ({e}), creating {self._experiment_name}")
            return await self._client.create_experiment(self._experiment_name)

    async def report(self, input: str, result: WorkflowResult) -> str:
        """
        Log one run: params, totals and per-agent metrics. Errors propagate.

        Returns:
            The MLflow run id
        """
        experiment_id = await self._experiment_id()
        run_id = await self._client.create_run(experiment_id)

        await self._client.log_param(run_id, "input_preview", input_preview(input))
        await self._client.log_param(run_id, "agent_count", str(len(result.agent_results)))

        await self._client.log_metric(run_id, "total_tokens", result.total_tokens)
        await self._client.log_metric(run_id, "total_execution_time_ms", result.execution_time_ms)

        for step in result.agent_results:
            key = normalize_agent_key(step.agent_name)
            await self._client.log_metric(run_id, f"{key}_tokens", step.tokens_used)
            await self._client.log_metric(run_id, f"{key}_execution_time_ms", step.execution_time_ms)

        await self._client.update_run(run_id, "FINISHED")
        logger.info(f"Logged workflow execution to MLflow run {run_id}")
        return run_id

    def launch(self, input: str, result: WorkflowResult) -> asyncio.Task:
        """Start ``report`` as a detached task; its failure is logged and discarded."""
        task = asyncio.create_task(self.report(input, result))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Failed to log to MLflow: {error!r}")

    async def drain(self) -> None:
        """Wait for in-flight reports (used at shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
