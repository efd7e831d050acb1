"""Abstract base class for LLM service providers.

Defines the contract for the large-language-model backend used both as the
vision fallback for text extraction and as the document analysis engine.
Implementations wrap the Anthropic API or an OpenAI-compatible API; call
sites stay provider-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider
# Located in: smartlens/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the SmartLens pipeline.

    Providers must support plain text completion; reading documents
    (images or PDFs) is optional and declared via :meth:`supports_vision`.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Raises
        ------
        smartlens.utils.errors.RateLimitError
            The provider refused the call for rate or quota reasons.
        smartlens.utils.errors.LLMTimeoutError
            The SDK's own request timeout fired.
        smartlens.utils.errors.CredentialError
            The API key was rejected.
        smartlens.utils.errors.LLMError
            Any other API failure or an empty response.
        """

    @abstractmethod
    async def vision_extract(self, data: bytes, prompt: str, media_type: str | None = None) -> str:
        """Send a document (image or PDF bytes) with *prompt* to the model.

        Parameters
        ----------
        data:
            Raw bytes of the image or PDF.
        prompt:
            Instruction describing what to read from the document.
        media_type:
            Declared MIME type.  When omitted, providers sniff magic bytes.

        Raises
        ------
        smartlens.utils.errors.LLMError
            If the provider cannot read documents or the call fails.
        """

    @abstractmethod
    def supports_vision(self) -> bool:
        """Return ``True`` if this provider can read image and PDF inputs."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"anthropic"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if a credential is configured.

        Does not contact the remote service.
        """
