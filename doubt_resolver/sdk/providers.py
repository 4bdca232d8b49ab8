"""
Completion provider adapters.

Every adapter exposes the same complete() call and raises ProviderError
for any SDK failure, so fallback logic never branches on provider.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import anthropic
import openai
from anthropic import Anthropic
from openai import OpenAI

from ..core.errors import ProviderError
from ..core.router import Provider
from ..core.token_counter import TokenUsage

EMPTY_RESPONSE_TEXT = "Unable to generate response."
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_IMAGE_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ModelResponse:
    """Text and token counts from one successful provider call."""
    text: str
    input_tokens: int
    output_tokens: int

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens
        )


def image_data_url(image: str) -> str:
    """Return image as a data URL, wrapping bare base64 payloads."""
    if image.startswith("data:"):
        return image
    return f"data:{DEFAULT_IMAGE_MEDIA_TYPE};base64,{image}"


def split_data_url(image: str):
    """Split a data URL or bare base64 payload into (media_type, data)."""
    if not image.startswith("data:"):
        return DEFAULT_IMAGE_MEDIA_TYPE, image
    header, _, data = image.partition(",")
    media_type = header[len("data:"):].split(";")[0] or DEFAULT_IMAGE_MEDIA_TYPE
    return media_type, data


class ProviderAdapter(ABC):
    """One completion provider family."""

    provider: Provider
    api_key_env: str
    api_key: Optional[str] = None

    def _require_api_key(self, model_id: str) -> None:
        if not (self.api_key or os.environ.get(self.api_key_env)):
            raise ProviderError(
                f"{self.api_key_env} is not set", self.provider.value, model_id
            )

    @abstractmethod
    def complete(
        self,
        model_id: str,
        system_prompt: str,
        user_content: str,
        max_tokens: int,
        image: Optional[str] = None
    ) -> ModelResponse:
        """Run one completion.

        Args:
            model_id: Provider model identifier
            system_prompt: System instructions
            user_content: User question text
            max_tokens: Maximum output tokens
            image: Optional base64 image or data URL

        Returns:
            ModelResponse with text and token counts

        Raises:
            ProviderError: On any transport, auth or quota failure
        """


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions adapter."""

    provider = Provider.OPENAI
    api_key_env = "OPENAI_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = 0.3
    ):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            # Retries belong to the orchestrator's fallback, not the SDK
            self._client = OpenAI(
                api_key=self.api_key,
                timeout=self.timeout_seconds,
                max_retries=0
            )
        return self._client

    def complete(
        self,
        model_id: str,
        system_prompt: str,
        user_content: str,
        max_tokens: int,
        image: Optional[str] = None
    ) -> ModelResponse:
        content: List[Dict[str, Any]] = [{"type": "text", "text": user_content}]
        if image:
            content.append({
                "type": "image_url",
                "image_url": {"url": image_data_url(image)}
            })

        self._require_api_key(model_id)
        try:
            completion = self.client.chat.completions.create(
                model=model_id,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": content},
                ],
                max_tokens=max_tokens,
                temperature=self.temperature
            )
        except openai.OpenAIError as e:
            raise ProviderError(str(e), self.provider.value, model_id) from e

        text = None
        if completion.choices:
            text = completion.choices[0].message.content
        usage = completion.usage
        return ModelResponse(
            text=text or EMPTY_RESPONSE_TEXT,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0
        )


class AnthropicAdapter(ProviderAdapter):
    """Anthropic messages adapter."""

    provider = Provider.ANTHROPIC
    api_key_env = "ANTHROPIC_API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._client: Optional[Anthropic] = None

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(
                api_key=self.api_key,
                timeout=self.timeout_seconds,
                max_retries=0
            )
        return self._client

    def complete(
        self,
        model_id: str,
        system_prompt: str,
        user_content: str,
        max_tokens: int,
        image: Optional[str] = None
    ) -> ModelResponse:
        content: List[Dict[str, Any]] = []
        if image:
            media_type, data = split_data_url(image)
            content.append({
                "type": "image",
                "source": {"type": "base64", "media_type": media_type, "data": data}
            })
        content.append({"type": "text", "text": user_content})

        self._require_api_key(model_id)
        try:
            message = self.client.messages.create(
                model=model_id,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": content}]
            )
        except anthropic.AnthropicError as e:
            raise ProviderError(str(e), self.provider.value, model_id) from e

        text = None
        if message.content and message.content[0].type == "text":
            text = message.content[0].text
        usage = message.usage
        return ModelResponse(
            text=text or EMPTY_RESPONSE_TEXT,
            input_tokens=usage.input_tokens if usage else 0,
            output_tokens=usage.output_tokens if usage else 0
        )


def build_default_adapters(
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
) -> Dict[Provider, ProviderAdapter]:
    """Create one adapter per provider; API keys come from the environment."""
    return {
        Provider.OPENAI: OpenAIAdapter(timeout_seconds=timeout_seconds),
        Provider.ANTHROPIC: AnthropicAdapter(timeout_seconds=timeout_seconds),
    }
