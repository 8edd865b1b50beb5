"""
Model capability used by the splitter, and its Ollama implementation.

The engine only talks to the ``ModelCapability`` protocol: text chat, chat
with page images, and prompt template resolution. ``OllamaCapability`` backs
it with a local Ollama server.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx
from ollama import Client, RequestError, ResponseError

from .config import Settings
from .exceptions import ModelInvocationError
from .prompts import PromptLibrary

logger = logging.getLogger(__name__)

ChatMessage = Dict[str, str]


@dataclass(frozen=True)
class ImageInput:
    """A base64 encoded image attached to a vision request."""

    data: str
    media_type: str = "image/png"


class ModelCapability(Protocol):
    """What the splitter needs from a model provider."""

    def chat(self, messages: List[ChatMessage]) -> Any:
        """Return the raw message content for role-tagged messages."""
        ...

    def chat_with_vision(
        self,
        prompt: str,
        images: List[ImageInput],
        system_prompt: Optional[str] = None
    ) -> Any:
        """Return the raw message content for a prompt with images."""
        ...

    def prompt_template(self, name: str, variables: Dict[str, Any]) -> str:
        ...


class OllamaCapability:
    """
    ``ModelCapability`` backed by an Ollama server.

    Transport and server failures surface as ``ModelInvocationError``;
    timeouts are enforced by the underlying HTTP client.
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        model_name: str = "llama3.1:8b",
        vision_model_name: str = "llama3.2-vision:11b",
        temperature: float = 0.1,
        prompts: Optional[PromptLibrary] = None,
        host: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize the Ollama capability.

        Args:
            client: Pre-built Ollama client; created from host/timeout if omitted
            model_name: Model used for text-only chat
            vision_model_name: Model used for requests with page images
            temperature: Sampling temperature for every request
            prompts: Prompt library for template resolution
            host: Ollama API host
            timeout: Request timeout in seconds
        """
        self.client = client or Client(host=host, timeout=timeout)
        self.model_name = model_name
        self.vision_model_name = vision_model_name
        self.temperature = temperature
        self.prompts = prompts or PromptLibrary()

    @classmethod
    def from_settings(cls, settings: Settings) -> "OllamaCapability":
        return cls(
            model_name=settings.llm_model,
            vision_model_name=settings.vision_model,
            temperature=settings.llm_temperature,
            host=settings.ollama_url,
            timeout=settings.llm_timeout,
        )

    def chat(self, messages: List[ChatMessage]) -> Any:
        return self._chat(self.model_name, messages, "chat")

    def chat_with_vision(
        self,
        prompt: str,
        images: List[ImageInput],
        system_prompt: Optional[str] = None
    ) -> Any:
        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({
            "role": "user",
            "content": prompt,
            "images": [image.data for image in images],
        })
        return self._chat(self.vision_model_name, messages, "chat_with_vision")

    def prompt_template(self, name: str, variables: Dict[str, Any]) -> str:
        return self.prompts.render(name, variables)

    def ensure_models(self) -> None:
        """Check both models exist on the server and pull the missing ones."""
        try:
            response = self.client.list()

            # Handle both dict and object responses
            if hasattr(response, "models"):
                models_list = response.models
            else:
                models_list = response.get("models", [])

            available = set()
            for m in models_list:
                if isinstance(m, dict):
                    available.add(m.get("model") or m.get("name", ""))
                else:
                    available.add(getattr(m, "model", None) or getattr(m, "name", ""))

            for name in {self.model_name, self.vision_model_name}:
                if name not in available:
                    logger.info(f"Model {name} not found in Ollama, pulling...")
                    self.client.pull(name)
        except (ResponseError, RequestError, httpx.HTTPError, ConnectionError) as e:
            logger.error(f"Ollama connection test failed: {e}")
            raise ModelInvocationError("ensure_models", str(e)) from e

    def _chat(self, model: str, messages: List[Dict[str, Any]], operation: str) -> Any:
        try:
            response = self.client.chat(
                model=model,
                messages=messages,
                options={"temperature": self.temperature},
            )
        except (ResponseError, RequestError, httpx.HTTPError, ConnectionError) as e:
            raise ModelInvocationError(operation, str(e)) from e

        try:
            return response["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ModelInvocationError(operation, "response carried no message content") from e
