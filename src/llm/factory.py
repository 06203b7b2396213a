"""Factory returning configured LLM client implementation."""

from __future__ import annotations

from config.settings import Settings, get_settings
from llm.base import BaseLLMClient
from llm.vllm_client import VLLMClient


def build_llm_client(settings: Settings | None = None) -> BaseLLMClient:
    """Instantiate the configured LLM connector."""

    settings = settings or get_settings()
    if settings.llm_provider == "self_hosted_vllm":
        return VLLMClient(settings)
    if settings.llm_provider == "openai":
        # Lazy import so the OpenAI SDK is only loaded when selected.
        from llm.openai_client import OpenAIClient

        return OpenAIClient(settings)
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")
