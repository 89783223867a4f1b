"""Capability contract shared by leaf tools and delegated agents."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .context import CallContext

if TYPE_CHECKING:
    from .logger import ConversationLogger
    from .session import ModelClient

logger = logging.getLogger(__name__)

EMPTY_OBJECT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@dataclass
class FunctionDeclaration:
    """Schema describing one callable capability to the model."""

    name: str
    description: str
    parameters: Optional[dict[str, Any]] = None  # JSON schema of the arguments
    response: Optional[dict[str, Any]] = None  # Hint about the output type

    def input_schema(self) -> dict[str, Any]:
        return self.parameters or EMPTY_OBJECT_SCHEMA

    def to_tool(self) -> dict[str, Any]:
        """Anthropic-format tool definition."""
        description = self.description
        if self.response and self.response.get("description"):
            description = f"{description}\nReturns: {self.response['description']}"
        return {
            "name": self.name,
            "description": description,
            "input_schema": self.input_schema(),
        }


class Capability(ABC):
    """Anything the orchestration engine can invoke on the model's behalf."""

    @abstractmethod
    def declare(self) -> FunctionDeclaration:
        """Describe this capability to the model."""
        ...

    @abstractmethod
    async def start(
        self,
        context: CallContext,
        client: "ModelClient",
        conversation_logger: "ConversationLogger",
    ) -> None:
        """One-time initialization, called before the owning agent's session opens."""
        ...

    @abstractmethod
    async def call(self, context: CallContext, args: dict[str, Any]) -> dict[str, Any]:
        """Run the capability.

        Domain failures are returned as ``{"error": message}``, never raised.

        Returns:
            A payload holding either ``"output"`` or ``"error"``.
        """
        ...

    @property
    def name(self) -> str:
        return self.declare().name


class ToolError(Exception):
    """A domain failure inside a leaf tool, reported back to the model as data."""


class LeafTool(Capability):
    """Base class for leaf actions.

    Subclasses implement ``run()`` and raise ``ToolError`` (or let any other
    exception escape) on failure; ``call()`` turns the outcome into a payload
    and reports errors to the conversation logger.
    """

    def __init__(self) -> None:
        self.client: Optional["ModelClient"] = None
        self.conversation_logger: Optional["ConversationLogger"] = None

    async def start(
        self,
        context: CallContext,
        client: "ModelClient",
        conversation_logger: "ConversationLogger",
    ) -> None:
        self.client = client
        self.conversation_logger = conversation_logger

    @abstractmethod
    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        """Do the work and return the ``output`` value."""
        ...

    async def call(self, context: CallContext, args: dict[str, Any]) -> dict[str, Any]:
        try:
            output = await self.run(context, args or {})
        except ToolError as e:
            return self._error(str(e))
        except Exception as e:
            logger.error(f"{self.name} failed: {e}", exc_info=True)
            return self._error(str(e) or type(e).__name__)
        return {"output": output}

    def question(self, text: str) -> None:
        if self.conversation_logger is not None:
            self.conversation_logger.log_question(self.name, text)

    def response(self, text: str) -> None:
        if self.conversation_logger is not None:
            self.conversation_logger.log_response(self.name, text)

    def _error(self, message: str) -> dict[str, Any]:
        self.response(f"Error: {message}")
        return {"error": message}


def require_str(args: dict[str, Any], key: str) -> str:
    """Return a non-empty string argument or raise ToolError."""
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise ToolError(f"missing required '{key}' argument")
    return value


def optional_str(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    return value if isinstance(value, str) else ""


def require_str_list(args: dict[str, Any], key: str) -> list[str]:
    """Return a non-empty list of strings or raise ToolError."""
    values = args.get(key)
    if not isinstance(values, list) or not values:
        raise ToolError(f"missing or invalid '{key}' argument")
    for i, value in enumerate(values):
        if not isinstance(value, str):
            raise ToolError(f"invalid {key} entry at index {i}: not a string")
    return list(values)
