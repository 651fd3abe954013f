"""
Experiment Tracking

MLflow REST client and the fire-and-forget reporter for chain runs.
"""

from .mlflow_client import MlflowClient, MlflowError, MlflowExperiment, MlflowRunInfo
from .reporter import (
    TrackingSettings,
    WorkflowRunReporter,
    input_preview,
    normalize_agent_key,
    tracking_settings_from_env,
)

__all__ = [
    "MlflowClient",
    "MlflowError",
    "MlflowExperiment",
    "MlflowRunInfo",
    "TrackingSettings",
    "WorkflowRunReporter",
    "input_preview",
    "normalize_agent_key",
    "tracking_settings_from_env",
]
