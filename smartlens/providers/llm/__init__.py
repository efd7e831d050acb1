"""LLM provider adapters.

Two concrete implementations of ILLMProvider (smartlens/interfaces/llm_provider.py):
    - AnthropicLLMProvider -- Claude (text, images and PDFs)
    - OpenAILLMProvider    -- gpt-4o / gpt-4o-mini, or any OpenAI-compatible API

``main.py`` picks the first one with a configured key (Anthropic, then OpenAI).
"""

from smartlens.providers.llm.anthropic_provider import AnthropicLLMProvider
from smartlens.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
