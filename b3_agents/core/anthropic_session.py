"""Conversation sessions backed by the Anthropic Messages API."""

import base64
import json
import logging
import os
from typing import Any, Optional

from anthropic import AsyncAnthropic

from .context import CallContext
from .session import (
    BlobPart,
    CallRequest,
    CallResponse,
    ConversationSession,
    GenerationConfig,
    ModelClient,
    OpaquePart,
    Part,
    TextPart,
    Turn,
)

logger = logging.getLogger(__name__)

IMAGE_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
TEXT_MEDIA_TYPES = {"application/json", "application/xml", "application/csv"}

SKIPPED_CALL_PAYLOAD = {
    "error": "not executed: only one function call is processed per turn, call it again if still needed"
}


class UnsupportedMediaType(ValueError):
    """A binary part cannot be sent to the model."""


def blob_block(part: BlobPart) -> dict[str, Any]:
    """Convert a binary part to a Messages API content block.

    Raises:
        UnsupportedMediaType: If the model cannot read this media type.
    """
    media_type = part.media_type.split(";")[0].strip().lower()
    if media_type in IMAGE_MEDIA_TYPES:
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": media_type,
                "data": base64.standard_b64encode(part.data).decode("ascii"),
            },
        }
    if media_type == "application/pdf":
        return {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": media_type,
                "data": base64.standard_b64encode(part.data).decode("ascii"),
            },
        }
    if media_type.startswith("text/") or media_type in TEXT_MEDIA_TYPES:
        return {"type": "text", "text": part.data.decode("utf-8", errors="replace")}
    raise UnsupportedMediaType(f"cannot send {part.media_type} content to the model")


def tool_result_block(response: CallResponse) -> dict[str, Any]:
    return {
        "type": "tool_result",
        "tool_use_id": response.id,
        "content": json.dumps(response.payload, default=str),
        "is_error": response.is_error,
    }


def part_from_block(block: Any) -> Part:
    """Convert a Messages API response block to a part."""
    block_type = getattr(block, "type", None)
    if block_type == "text":
        return TextPart(block.text)
    if block_type == "tool_use":
        return CallRequest(name=block.name, id=block.id, arguments=dict(block.input or {}))
    return OpaquePart(kind=str(block_type), raw=block)


def _block_field(block: Any, name: str) -> Any:
    if isinstance(block, dict):
        return block.get(name)
    return getattr(block, name, None)


class AnthropicSession(ConversationSession):
    """Keeps the message history of one conversation and replays it on every send."""

    def __init__(self, client: AsyncAnthropic, model: str, config: GenerationConfig):
        self._client = client
        self._model = model
        self._config = config
        self._tools = [d.to_tool() for d in config.tools] + list(config.builtin_tools)
        self.messages: list[dict[str, Any]] = []

    async def send(self, context: CallContext, *parts: Part) -> Turn:
        user_message = {"role": "user", "content": self._user_content(parts)}
        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._config.max_tokens,
            "messages": self.messages + [user_message],
        }
        if self._config.system_instruction:
            request["system"] = self._config.system_instruction
        if self._tools:
            request["tools"] = self._tools

        logger.debug(f"[{context.request_id}] sending {len(parts)} part(s) to {self._model}")
        response = await self._client.messages.create(**request)

        # History only grows once the exchange succeeded.
        self.messages.append(user_message)
        if response.content:
            self.messages.append({"role": "assistant", "content": response.content})

        return Turn(parts=[part_from_block(block) for block in response.content or []])

    def _user_content(self, parts: tuple[Part, ...]) -> list[dict[str, Any]]:
        results: list[dict[str, Any]] = []
        others: list[dict[str, Any]] = []
        answered: set[str] = set()

        for part in parts:
            if isinstance(part, CallResponse):
                results.append(tool_result_block(part))
                answered.add(part.id)
            elif isinstance(part, TextPart):
                others.append({"type": "text", "text": part.text})
            elif isinstance(part, BlobPart):
                others.append(blob_block(part))
            else:
                raise TypeError(f"cannot send {type(part).__name__} to the model")

        # Every tool_use of the previous assistant message needs a result.
        for call_id in self._pending_call_ids():
            if call_id not in answered:
                results.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": call_id,
                        "content": json.dumps(SKIPPED_CALL_PAYLOAD),
                        "is_error": True,
                    }
                )
        return results + others

    def _pending_call_ids(self) -> list[str]:
        if not self.messages or self.messages[-1]["role"] != "assistant":
            return []
        return [
            _block_field(block, "id")
            for block in self.messages[-1]["content"]
            if _block_field(block, "type") == "tool_use"
        ]


class AnthropicModelClient(ModelClient):
    """Opens Anthropic-backed sessions from one shared async client."""

    def __init__(self, client: Optional[AsyncAnthropic] = None, api_key: Optional[str] = None):
        self._client = client
        self._api_key = api_key

    def _get_client(self) -> AsyncAnthropic:
        """Get or create the Anthropic client.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is not set.
        """
        if self._client is None:
            api_key = self._api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable not set")
            self._client = AsyncAnthropic(api_key=api_key)
        return self._client

    async def create_session(self, model: str, config: GenerationConfig) -> AnthropicSession:
        return AnthropicSession(self._get_client(), model, config)
