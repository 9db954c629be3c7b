"""Chat completion clients - OpenAI-compatible access to OpenRouter and Groq."""

from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from comptable.logging import get_logger

logger = get_logger("comptable.llm.openrouter")


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable (429, 500, 502, 503)."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in (429, 500, 502, 503)
    return False


def build_messages(prompt: str, system_prompt: Optional[str] = None) -> list[dict]:
    """Build a chat message list from a user prompt and optional system prompt."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


class ChatClient:
    """
    Base client for OpenAI-compatible chat completion endpoints.

    Subclasses set BASE_URL and may add provider-specific headers.
    Non-2xx responses raise httpx.HTTPStatusError; rate limits and
    server errors are retried with exponential backoff.
    """

    BASE_URL = ""
    PROVIDER = "chat"

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.client = httpx.AsyncClient(transport=transport, timeout=timeout)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "llm_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,
            error=str(retry_state.outcome.exception()),
        ),
    )
    async def chat(
        self,
        messages: list[dict],
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        response_format: Optional[dict] = None,
    ) -> str:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Provider model ID
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            response_format: Optional structured output hint, e.g. {"type": "json_object"}

        Returns:
            Generated text (may be empty)
        """
        body = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            body["response_format"] = response_format

        response = await self.client.post(
            f"{self.BASE_URL}/chat/completions",
            headers=self._headers(),
            json=body,
        )
        response.raise_for_status()

        data = response.json()

        # Handle API error responses that don't have 'choices'
        if not data.get("choices"):
            error = data.get("error")
            error_msg = (error.get("message") if isinstance(error, dict) else error) or str(data)
            logger.error("chat_api_error", provider=self.PROVIDER, model=model, error=error_msg)
            raise ValueError(f"{self.PROVIDER} API error: {error_msg}")

        message = data["choices"][0].get("message") or {}
        content = message.get("content") or ""

        # Reasoning models may return empty content with output in reasoning fields instead
        if not content:
            reasoning_content = message.get("reasoning_content") or message.get("reasoning") or ""
            if reasoning_content:
                logger.info("reasoning_model_content_fallback", model=model)
                content = reasoning_content

        logger.debug(
            "llm_call",
            provider=self.PROVIDER,
            model=model,
            tokens=(data.get("usage") or {}).get("total_tokens"),
        )

        return content

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class OpenRouterClient(ChatClient):
    """
    OpenRouter API Client.

    One key gives access to every provider the fan-out queries
    (Anthropic, Google, OpenAI, DeepSeek, Qwen, Perplexity, ...).
    """

    BASE_URL = "https://openrouter.ai/api/v1"
    PROVIDER = "openrouter"

    def __init__(
        self,
        api_key: str,
        site_url: str = "",
        site_name: str = "comptable",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, timeout=timeout, transport=transport)
        self.site_url = site_url
        self.site_name = site_name

    def _headers(self) -> dict:
        headers = super()._headers()
        headers["HTTP-Referer"] = self.site_url
        headers["X-Title"] = self.site_name
        return headers


class GroqClient(ChatClient):
    """Groq API Client, used for the fast normalization and cell-answer calls."""

    BASE_URL = "https://api.groq.com/openai/v1"
    PROVIDER = "groq"
