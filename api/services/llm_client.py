"""
LLM chat completion client for Work-OS.

The chat orchestrator depends on the ChatCompletionClient protocol, not on a
concrete provider, so the context pipeline can be tested without network
access. OpenAIChatClient talks to any OpenAI-compatible /chat/completions
endpoint (OpenAI, OpenClaw gateways) over httpx.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

import httpx

logger = logging.getLogger(__name__)

ToolChoice = Union[str, dict]


class ChatClientError(Exception):
    """Error communicating with the chat completion provider."""
    pass


@dataclass
class ChatCompletion:
    """Assistant reply from one completion call."""
    content: str
    tool_calls: list[dict] = field(default_factory=list)
    model: Optional[str] = None


class ChatCompletionClient(Protocol):
    """Anything that can run one chat completion."""

    async def complete(
        self,
        messages: list[dict],
        tools: Optional[list[dict]] = None,
        tool_choice: ToolChoice = "auto",
    ) -> ChatCompletion:
        ...


class OpenAIChatClient:
    """
    Client for OpenAI-compatible chat completion APIs.

    Retries timeouts, connection errors and 5xx responses with exponential
    backoff; 4xx responses fail immediately.
    """

    MAX_RETRIES = 3

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        backoff_seconds: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Bearer token for the provider
            model: Model name sent with every request
            base_url: API root (the /chat/completions path is appended)
            timeout: Request timeout in seconds
            backoff_seconds: Base delay between retries (doubles each attempt)
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.backoff_seconds = backoff_seconds
        self._transport = transport

    def _build_payload(
        self,
        messages: list[dict],
        tools: Optional[list[dict]],
        tool_choice: ToolChoice,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.model, "messages": messages}
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice
        return payload

    @staticmethod
    def _parse_response(data: dict) -> ChatCompletion:
        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise ChatClientError(f"Malformed completion response: {e}") from e
        return ChatCompletion(
            content=message.get("content") or "",
            tool_calls=message.get("tool_calls") or [],
            model=data.get("model"),
        )

    async def complete(
        self,
        messages: list[dict],
        tools: Optional[list[dict]] = None,
        tool_choice: ToolChoice = "auto",
    ) -> ChatCompletion:
        """
        Run one chat completion.

        Raises:
            ChatClientError: If the request fails after retries, is rejected,
                or the response cannot be parsed
        """
        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = self._build_payload(messages, tools, tool_choice)
        last_error: Optional[ChatClientError] = None

        for attempt in range(self.MAX_RETRIES):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(url, json=payload, headers=headers)
                    response.raise_for_status()
                    return self._parse_response(response.json())

            except httpx.TimeoutException as e:
                last_error = ChatClientError(f"Timeout calling chat provider: {e}")
                logger.warning(f"Chat provider timeout (attempt {attempt + 1}/{self.MAX_RETRIES})")
            except httpx.ConnectError as e:
                last_error = ChatClientError(f"Connection error to chat provider: {e}")
                logger.warning(f"Chat provider connection error (attempt {attempt + 1}/{self.MAX_RETRIES})")
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise ChatClientError(f"Chat provider rejected request: {e}") from e
                last_error = ChatClientError(f"HTTP error from chat provider: {e}")
                logger.warning(f"Chat provider HTTP error (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}")
            except ValueError as e:
                raise ChatClientError(f"Chat provider returned invalid JSON: {e}") from e

            if attempt < self.MAX_RETRIES - 1:
                await asyncio.sleep(self.backoff_seconds * (2 ** attempt))

        raise last_error
