"""MLflow REST client.

Thin async wrapper over the MLflow tracking server's REST API 2.0, covering
only what workflow reporting needs: experiments, runs, params and metrics.

Usage:
    async with MlflowClient("http://localhost:5000") as client:
        experiment_id = await client.create_experiment("customer-support-triage")
        run_id = await client.create_run(experiment_id)
        await client.log_metric(run_id, "total_tokens", 42)
        await client.update_run(run_id, "FINISHED")
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

API_BASE_PATH = "/api/2.0/mlflow"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class MlflowError(Exception):
    """Error returned by the MLflow server.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code (if applicable)
        error_code: MLflow error code from the response body (e.g. RESOURCE_DOES_NOT_EXIST)
    """

    message: str
    status_code: int | None = None
    error_code: str | None = None

    def __str__(self) -> str:
        if self.error_code:
            return f"{self.error_code}: {self.message}"
        return self.message


@dataclass(frozen=True)
class MlflowExperiment:
    experiment_id: str
    name: str
    lifecycle_stage: str | None = None


@dataclass(frozen=True)
class MlflowRunInfo:
    run_id: str
    experiment_id: str | None
    status: str
    start_time: int | None = None
    end_time: int | None = None


class MlflowClient:
    """Async client for the MLflow tracking REST API."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "MlflowClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -------------------------------------------------------------------------
    # Experiments
    # -------------------------------------------------------------------------

    async def get_experiment_by_name(self, name: str) -> MlflowExperiment:
        if not name.strip():
            raise ValueError("Experiment name cannot be empty")
        data = await self._get("/experiments/get-by-name", params={"experiment_name": name})
        experiment = data["experiment"]
        return MlflowExperiment(
            experiment_id=experiment["experiment_id"],
            name=experiment["name"],
            lifecycle_stage=experiment.get("lifecycle_stage"),
        )

    async def create_experiment(self, name: str) -> str:
        """Create an experiment and return its id."""
        if not name.strip():
            raise ValueError("Experiment name cannot be empty")
        data = await self._post("/experiments/create", {"name": name})
        return data["experiment_id"]

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    async def create_run(self, experiment_id: str) -> str:
        """Start a run and return its id."""
        data = await self._post(
            "/runs/create",
            {"experiment_id": experiment_id, "start_time": _now_ms()},
        )
        return data["run"]["info"]["run_id"]

    async def log_param(self, run_id: str, key: str, value: str) -> None:
        if not key:
            raise ValueError("Param key cannot be empty")
        await self._post("/runs/log-parameter", {"run_id": run_id, "key": key, "value": value})

    async def log_metric(self, run_id: str, key: str, value: float, step: int = 0) -> None:
        if not key:
            raise ValueError("Metric key cannot be empty")
        await self._post(
            "/runs/log-metric",
            {"run_id": run_id, "key": key, "value": float(value), "timestamp": _now_ms(), "step": step},
        )

    async def update_run(self, run_id: str, status: str) -> MlflowRunInfo:
        """Set the run status (e.g. FINISHED) and stamp its end time."""
        data = await self._post(
            "/runs/update",
            {"run_id": run_id, "status": status, "end_time": _now_ms()},
        )
        info = data.get("run_info", {})
        return MlflowRunInfo(
            run_id=info.get("run_id", run_id),
            experiment_id=info.get("experiment_id"),
            status=info.get("status", status),
            start_time=info.get("start_time"),
            end_time=info.get("end_time"),
        )

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        response = await self._client.get(f"{API_BASE_PATH}{path}", params=params)
        return self._decode(response)

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(f"{API_BASE_PATH}{path}", json=body)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        if response.is_success:
            return response.json() if response.content else {}

        error_code = None
        message = f"HTTP {response.status_code}: {response.text}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error_code = body.get("error_code")
            message = body.get("message", message)

        logger.debug(f"MLflow request {response.request.url} failed: {message}")
        raise MlflowError(message=message, status_code=response.status_code, error_code=error_code)
