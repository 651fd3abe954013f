"""
Chat Model Factory

Builds the shared completion capability every agent in a workflow streams from.
Any LangChain chat model works; this module only picks the provider class from
a model identifier and the environment.

Supported identifiers:
- Azure OpenAI: "azure/<deployment>"
- Anthropic: "claude-..."
- OpenAI: anything else ("gpt-4o-mini", "gpt-4o", ...)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LLMConfig(BaseModel):
    """Configuration for the shared chat model."""

    model: str = Field(
        default="azure/gpt-4o-mini",
        description="Model identifier (e.g., 'azure/gpt-4o-mini', 'gpt-4o', 'claude-sonnet-4-5')",
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for model responses",
    )
    max_tokens: Optional[int] = Field(
        default=None,
        description="Maximum tokens to generate per completion",
    )
    timeout: Optional[float] = Field(
        default=60.0,
        description="Provider request timeout in seconds",
    )

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """
        Read the configuration from environment variables.

        Reads:
        - AGENTFLOW_LLM_MODEL
        - AGENTFLOW_LLM_TEMPERATURE
        - AGENTFLOW_LLM_MAX_TOKENS (optional)
        - AGENTFLOW_LLM_TIMEOUT
        """
        max_tokens_str = os.getenv("AGENTFLOW_LLM_MAX_TOKENS")
        return cls(
            model=os.getenv("AGENTFLOW_LLM_MODEL", "azure/gpt-4o-mini"),
            temperature=float(os.getenv("AGENTFLOW_LLM_TEMPERATURE", "0.0")),
            max_tokens=int(max_tokens_str) if max_tokens_str else None,
            timeout=float(os.getenv("AGENTFLOW_LLM_TIMEOUT", "60.0")),
        )


def _require_env(name: str, provider: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"{provider} requires {name} environment variable")
    return value


def create_llm(
    model: str = "azure/gpt-4o-mini",
    temperature: float = 0.0,
    max_tokens: Optional[int] = None,
    timeout: Optional[float] = 60.0,
    **kwargs: Any,
) -> BaseChatModel:
    """
    Create the chat model for a model identifier.

    Provider-side retries are disabled: a failed completion must surface
    immediately as a workflow failure.

    Environment variables required:
    - Azure OpenAI: AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT,
      AZURE_OPENAI_API_VERSION (optional)
    - Anthropic: ANTHROPIC_API_KEY
    - OpenAI: OPENAI_API_KEY

    Args:
        model: Model identifier string
        temperature: Sampling temperature (0.0 to 2.0)
        max_tokens: Maximum tokens to generate (None for model default)
        timeout: Request timeout in seconds
        **kwargs: Additional provider-specific parameters

    Returns:
        A LangChain chat model supporting astream() and bind_tools()

    Raises:
        ImportError: If the provider integration package is not installed
        ValueError: If required environment variables are missing
    """
    try:
        if model.startswith("azure/"):
            from langchain_openai import AzureChatOpenAI

            deployment_name = model.removeprefix("azure/")
            api_key = _require_env("AZURE_OPENAI_API_KEY", "Azure OpenAI")
            endpoint = _require_env("AZURE_OPENAI_ENDPOINT", "Azure OpenAI")
            api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21")

            logger.info(
                f"Creating Azure OpenAI chat model: deployment={deployment_name}, endpoint={endpoint}"
            )
            return AzureChatOpenAI(
                azure_deployment=deployment_name,
                azure_endpoint=endpoint,
                api_key=api_key,
                api_version=api_version,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
                max_retries=0,
                **kwargs,
            )

        if model.startswith("claude"):
            from langchain_anthropic import ChatAnthropic

            api_key = _require_env("ANTHROPIC_API_KEY", "Anthropic")
            logger.info(f"Creating Anthropic chat model: {model}")
            return ChatAnthropic(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens or 1024,
                timeout=timeout,
                max_retries=0,
                api_key=api_key,
                **kwargs,
            )

        from langchain_openai import ChatOpenAI

        api_key = _require_env("OPENAI_API_KEY", "OpenAI")
        logger.info(f"Creating OpenAI chat model: {model}")
        return ChatOpenAI(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=0,
            api_key=api_key,
            **kwargs,
        )

    except ImportError as e:
        raise ImportError(
            f"Failed to import chat model integration: {e}\n"
            f"  - For Azure OpenAI / OpenAI: pip install langchain-openai\n"
            f"  - For Anthropic: pip install langchain-anthropic"
        ) from e


def create_llm_from_env() -> BaseChatModel:
    """Create the shared chat model from AGENTFLOW_LLM_* environment variables."""
    config = LLMConfig.from_env()
    logger.info(
        f"Creating chat model from environment: model={config.model}, "
        f"temperature={config.temperature}"
    )
    return create_llm(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.timeout,
    )
