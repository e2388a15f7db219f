"""
LLM Client - streaming transport to the model provider's messages API.

Request format:
    {"model", "messages": [{"role": "user"|"assistant", "content"}], "system",
     "temperature", "max_tokens", "stream", "tools": [...]}

Key translations:
- System message: first system message of the snapshot -> top-level "system"
- Tool-call records: assistant "tool_use" content blocks
- Tool-result records: "tool_result" blocks on the following user message
- Consecutive same-role messages are merged (the API requires alternation)

Streaming yields raw response lines; decoding them is the StreamDecoder's job.
"""

import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from config import runtime_config
from errors import TransportError
from logging_config import log_llm, preview

from routers.chat_orchestration.session import Message, MessageRole
from routers.chat_prompts import DEFAULT_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_USER_MESSAGE = "Hello, I need help with development."
MISSING_RESULT_TEXT = "Tool execution did not complete."
ERROR_BODY_LIMIT = 2000


def _text_block(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def _append_blocks(messages: List[Dict[str, Any]], role: str, blocks: List[Dict[str, Any]]) -> None:
    """Append blocks under role, merging into the previous message when roles match."""
    if not blocks:
        return
    if messages and messages[-1]["role"] == role:
        messages[-1]["content"].extend(blocks)
    else:
        messages.append({"role": role, "content": list(blocks)})


def to_provider_messages(snapshot: Sequence[Message]) -> List[Dict[str, Any]]:
    """Translate a session snapshot into the provider's alternating message list."""
    answered = {m.tool_call_id for m in snapshot if m.role == MessageRole.TOOL}
    messages: List[Dict[str, Any]] = []

    for msg in snapshot:
        if msg.role == MessageRole.SYSTEM:
            continue

        if msg.role == MessageRole.USER:
            if msg.content:
                _append_blocks(messages, "user", [_text_block(msg.content)])

        elif msg.role == MessageRole.ASSISTANT and msg.tool_call is not None:
            call = msg.tool_call
            _append_blocks(messages, "assistant", [{
                "type": "tool_use",
                "id": call.id,
                "name": call.name,
                "input": call.arguments_dict(),
            }])
            # The API rejects a tool_use without a tool_result (failed or cancelled calls)
            if call.id not in answered:
                _append_blocks(messages, "user", [{
                    "type": "tool_result",
                    "tool_use_id": call.id,
                    "content": MISSING_RESULT_TEXT,
                    "is_error": True,
                }])

        elif msg.role == MessageRole.ASSISTANT:
            if msg.content:
                _append_blocks(messages, "assistant", [_text_block(msg.content)])

        elif msg.role == MessageRole.TOOL:
            _append_blocks(messages, "user", [{
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content,
            }])

        else:
            logger.warning(f"Ignoring message with unsupported role: {msg.role}")

    # Plain single-text messages are sent as strings
    for message in messages:
        content = message["content"]
        if len(content) == 1 and content[0]["type"] == "text":
            message["content"] = content[0]["text"]

    return messages


class LLMClient:
    """Async client for the model provider's streaming messages endpoint."""

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        api_version: str = "2023-06-01",
        timeout: float = 180.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            endpoint: Messages API URL
            api_key: Provider API key (sent as x-api-key)
            api_version: anthropic-version header value
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.endpoint = endpoint
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            headers={
                "x-api-key": api_key,
                "anthropic-version": api_version,
                "content-type": "application/json",
            },
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )
        masked = api_key[:4] + "..." if api_key else "none"
        logger.info(f"LLM client initialized for {endpoint} (key {masked})")

    def build_request(
        self,
        snapshot: Sequence[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        stream: bool = True,
    ) -> Dict[str, Any]:
        """Build the provider request body from an immutable snapshot."""
        system = next((m.content for m in snapshot if m.role == MessageRole.SYSTEM), None)
        if not system:
            logger.info("No system message in snapshot, using default")
            system = DEFAULT_SYSTEM_PROMPT

        messages = to_provider_messages(snapshot)
        if not messages:
            logger.warning("No messages in snapshot, adding default user message")
            messages = [{"role": "user", "content": DEFAULT_USER_MESSAGE}]

        params = runtime_config.get_llm_params()
        request: Dict[str, Any] = {
            "model": params["model"],
            "messages": messages,
            "system": system,
            "temperature": params["temperature"],
            "max_tokens": params["max_tokens"],
            "stream": stream,
        }
        if tools:
            request["tools"] = tools

        logger.debug(
            f"Built request: model={request['model']} messages={len(messages)} "
            f"tools={len(tools or [])} stream={stream}"
        )
        return request

    async def stream_lines(self, request: Dict[str, Any]) -> AsyncIterator[str]:
        """POST a streaming request and yield raw response lines as they arrive.

        Raises:
            TransportError: non-2xx status (full body attached), connection
                failure or timeout
        """
        model = request.get("model", "")
        start = time.time()
        log_llm(logger, "start", model=model)

        try:
            async with self._client.stream(
                "POST", self.endpoint, json=request, headers={"accept": "text/event-stream"}
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise self._status_error(response.status_code, body)

                async for line in response.aiter_lines():
                    yield line
        except httpx.TimeoutException as e:
            logger.error(f"Model API timed out after {self._timeout:g}s: {e}")
            raise TransportError("Model API request timed out", details=str(e), kind="timeout") from e
        except httpx.TransportError as e:
            logger.error(f"Error calling model API: {e}")
            raise TransportError("Could not reach model API", details=str(e), kind="connection") from e

        log_llm(logger, "end", model=model, duration=time.time() - start)

    async def complete(self, request: Dict[str, Any]) -> str:
        """Non-streaming call. Returns the text of the first content item."""
        request = {**request, "stream": False}
        try:
            response = await self._client.post(self.endpoint, json=request)
        except httpx.TimeoutException as e:
            raise TransportError("Model API request timed out", details=str(e), kind="timeout") from e
        except httpx.TransportError as e:
            raise TransportError("Could not reach model API", details=str(e), kind="connection") from e

        if not response.is_success:
            raise self._status_error(response.status_code, response.text)

        try:
            content = response.json().get("content") or []
            return content[0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected model response: {preview(response.text, 200)}")
            raise TransportError("Empty or malformed model response", details=str(e), kind="stream") from e

    def _status_error(self, status_code: int, body: str) -> TransportError:
        logger.error(f"Model API error: {status_code} - {preview(body, ERROR_BODY_LIMIT)}")
        try:
            error = json.loads(body).get("error") or {}
            logger.error(f"Model API error details: type={error.get('type')}, message={error.get('message')}")
        except (ValueError, AttributeError):
            logger.debug("Model API error body is not JSON")
        return TransportError(
            f"Error from model API: {status_code}",
            details=body,
            kind="status",
            status_code=status_code,
            body=body,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


# Singleton instance
_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get the LLM client singleton built from runtime_config."""
    global _client
    if _client is None:
        _client = LLMClient(
            endpoint=runtime_config.llm_endpoint,
            api_key=runtime_config.llm_api_key,
            api_version=runtime_config.llm_api_version,
            timeout=runtime_config.llm_timeout,
        )
    return _client


async def close_llm_client() -> None:
    """Close the singleton client (application shutdown)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
