"""OpenAI chat-completions client."""

from typing import Any, Dict, Optional

from docsync.core.base_llm_client import BaseLLMClient
from docsync.utils.exceptions import APIClientError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)


class OpenAIClient:
    """Thin wrapper over the chat-completions endpoint.

    Builds the system/user message pair, delegates HTTP and retries to
    :class:`BaseLLMClient` and returns the first choice's text.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4.1-mini",
        base_url: str = "https://api.openai.com/v1/chat/completions",
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Chat model name
            base_url: Chat-completions endpoint URL
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
            retry_delay: Base delay for exponential backoff
        """
        self.model = model
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )

        LOGGER.info(f"Initialized OpenAI client with model {self.model}")

    async def generate_content(
        self,
        contents: str,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate a chat completion.

        Args:
            contents: User message
            system_instruction: Optional system message
            generation_config: Optional generation config (temperature, max_output_tokens)

        Returns:
            Generated text response (may be empty)

        Raises:
            APIClientError: If the call fails or the response has no choices
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": contents})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.0,
        }
        if generation_config:
            if "temperature" in generation_config:
                payload["temperature"] = generation_config["temperature"]
            if "max_output_tokens" in generation_config:
                payload["max_tokens"] = generation_config["max_output_tokens"]

        response = await self.client.call_api(payload=payload)

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error(f"Unexpected chat-completions response format: {response}")
            raise APIClientError("Invalid response format from chat-completions API")

        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            LOGGER.warning("Empty response from chat-completions API")
        return content
