"""
Chat Model Factory

Centralized construction of the completion capability shared by all agents.
"""

from .factory import create_llm, create_llm_from_env, LLMConfig

__all__ = ["create_llm", "create_llm_from_env", "LLMConfig"]
