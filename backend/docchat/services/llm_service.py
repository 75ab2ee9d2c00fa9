"""LLM service for OpenAI-compatible chat completion APIs."""
import time
from typing import Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from docchat.exceptions import ConfigurationError, GenerationError
from docchat.utils.logger import logger

SYSTEM_MESSAGE = (
    "You are an AI assistant in a shared chat room. You help participants understand "
    "the documents they uploaded and, when provided, current web search results."
)


class LLMService:
    """Single-shot text generation: prompt in, text out."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.deepseek.com",
        model: str = "deepseek-chat",
        timeout: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize LLM service.

        Args:
            api_key: API key for the completion endpoint
            base_url: Base URL of an OpenAI-compatible API (without /v1/chat/completions)
            model: Model name to use
            timeout: Request timeout in seconds
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the response
            client: Optional preconfigured client
        """
        if client is None and not api_key:
            raise ConfigurationError("LLM_API_KEY environment variable is required")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(timeout=timeout),
        )

    async def generate(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Fully rendered prompt

        Returns:
            Generated text

        Raises:
            GenerationError: If the API call fails, times out or returns no text
        """
        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"Error calling LLM API: {str(e)}", exc_info=True)
            raise GenerationError(f"Failed to generate answer: {str(e)}") from e

        answer = response.choices[0].message.content if response.choices else None
        if not answer:
            raise GenerationError("LLM returned an empty response")

        token_usage = None
        if response.usage is not None:
            token_usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.info(
            "LLM response generated",
            extra={
                "token_usage": token_usage,
                "response_time_ms": (time.time() - start_time) * 1000,
                "answer_length": len(answer),
            },
        )
        return answer

    async def close(self):
        """Close HTTP client."""
        await self.client.close()
