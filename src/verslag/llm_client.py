"""Chat-completion calls to an OpenAI-compatible API."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from .errors import (
    ContentRejectedError,
    CredentialError,
    MalformedResponseError,
    ProviderError,
)

logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
MAX_RETRIES = 3
BASE_DELAY = 2.0

# Reasoning model families reject temperature and max_tokens
REASONING_PREFIXES = ("o1", "o3", "o4")
RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}
REJECTED_STATUS = {400, 403, 413, 422}


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class Completion:
    """Generated text plus provider-reported usage, when the provider sent it."""

    text: str
    usage: Usage | None = None


class CompletionClient(Protocol):
    async def complete(
        self,
        messages: list[dict[str, str]],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion: ...


def validate_api_key(api_key: str | None) -> str:
    """Return the key if it looks like an OpenAI secret key.

    Raises:
        CredentialError: If the key is missing or does not start with ``sk-``.
    """
    if not api_key:
        raise CredentialError("API key is missing. Set --api-key or OPENAI_API_KEY.")
    if not api_key.startswith("sk-"):
        raise CredentialError('Invalid API key format. OpenAI API keys start with "sk-".')
    return api_key


def is_reasoning_model(model: str) -> bool:
    return model.startswith(REASONING_PREFIXES)


class LLMClient:
    """Async chat-completion client with retry and exponential backoff."""

    def __init__(
        self,
        api_key: str | None,
        url: str = OPENAI_URL,
        timeout: float = 120.0,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = validate_api_key(api_key)
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.transport = transport

    async def complete(
        self,
        messages: list[dict[str, str]],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        """Send one chat-completion request.

        Args:
            messages: Role-tagged messages in order.
            model: Model identifier.
            temperature: Sampling temperature; dropped for reasoning models.
            max_tokens: Output token hint; dropped for reasoning models.

        Returns:
            The generated text and, when reported, token usage.

        Raises:
            ContentRejectedError: If the provider refuses the request.
            CredentialError: If the provider rejects the API key.
            ProviderError: After MAX_RETRIES failed attempts, or on other errors.
        """
        payload: dict = {"model": model, "messages": messages}
        if not is_reasoning_model(model):
            if temperature is not None:
                payload["temperature"] = temperature
            if max_tokens is not None:
                payload["max_tokens"] = max_tokens

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            except httpx.TimeoutException as e:
                error = ProviderError(f"Request timed out: {e}")
            except httpx.TransportError as e:
                error = ProviderError(f"Network error: {e}")
            else:
                if response.is_success:
                    return _parse_completion(response)
                error = _status_error(response)
                if response.status_code not in RETRYABLE_STATUS:
                    raise error

            if attempt == self.max_retries - 1:
                raise error
            delay = self.base_delay * (2**attempt)
            logger.warning("LLM call failed (%s), retrying in %.1fs", error, delay)
            await asyncio.sleep(delay)

        # Should not reach here, but satisfy type checker
        raise ProviderError("Max retries exceeded")


def _status_error(response: httpx.Response) -> ProviderError | CredentialError:
    """Map a non-success response to the matching error, keeping the provider's message."""
    status = response.status_code
    message = f"API request failed with status {status}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message") or message

    if status == 401:
        return CredentialError(f"Invalid API key: {message}")
    if status in REJECTED_STATUS:
        return ContentRejectedError(message, status)
    return ProviderError(message, status)


def _parse_completion(response: httpx.Response) -> Completion:
    """Validate the response body into a Completion."""
    try:
        data = response.json()
        text = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise MalformedResponseError(f"Malformed response body: {e}", response.status_code) from e
    if not isinstance(text, str) or not text.strip():
        raise MalformedResponseError("LLM returned empty response", response.status_code)
    return Completion(text=text, usage=_parse_usage(data.get("usage")))


def _parse_usage(usage: object) -> Usage | None:
    """Usage counts, or None when the provider did not report integer counts."""
    if not isinstance(usage, dict):
        return None
    prompt = usage.get("prompt_tokens")
    completion = usage.get("completion_tokens")
    if not isinstance(prompt, int) or not isinstance(completion, int):
        return None
    total = usage.get("total_tokens")
    if not isinstance(total, int):
        total = prompt + completion
    return Usage(prompt, completion, total)
