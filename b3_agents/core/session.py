"""Conversation parts, turns and the model-service session contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

from .context import CallContext

if TYPE_CHECKING:
    from .capability import FunctionDeclaration


@dataclass
class TextPart:
    """A fragment of text, sent by the user or produced by the model."""

    text: str


@dataclass
class BlobPart:
    """Binary input (an image, a PDF...) with its declared media type."""

    media_type: str
    data: bytes


@dataclass
class CallRequest:
    """A capability invocation requested by the model."""

    name: str
    id: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class CallResponse:
    """The engine's reply to a CallRequest.

    ``id`` and ``name`` mirror the originating request; the model service
    correlates the two by ``id``.
    """

    id: str
    name: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_request(cls, request: CallRequest, payload: dict[str, Any]) -> "CallResponse":
        return cls(id=request.id, name=request.name, payload=payload)

    @property
    def is_error(self) -> bool:
        return "error" in self.payload


@dataclass
class OpaquePart:
    """A model output part the engine does not interpret (e.g. a web search result)."""

    kind: str
    raw: Any = None


Part = Union[TextPart, BlobPart, CallRequest, CallResponse, OpaquePart]


@dataclass
class Turn:
    """One unit of model output, also used as the final content of an ask."""

    parts: list[Part] = field(default_factory=list)

    @property
    def calls(self) -> list[CallRequest]:
        """Call requests in part order."""
        return [p for p in self.parts if isinstance(p, CallRequest)]

    @property
    def is_terminal(self) -> bool:
        return not self.calls

    @property
    def texts(self) -> list[str]:
        return [p.text for p in self.parts if isinstance(p, TextPart) and p.text]

    @property
    def text(self) -> str:
        """All text fragments joined by newlines."""
        return "\n".join(self.texts)


@dataclass
class GenerationConfig:
    """Model configuration attached to a session when it is created."""

    system_instruction: Optional[str] = None
    max_tokens: int = 4096
    # Server-side facilities passed through untouched, e.g. web search.
    builtin_tools: list[dict[str, Any]] = field(default_factory=list)
    # Filled in by Agent.start() from the capability registry.
    tools: list["FunctionDeclaration"] = field(default_factory=list)


class ConversationSession(ABC):
    """Opaque, stateful handle on an ongoing exchange with the model."""

    @abstractmethod
    async def send(self, context: CallContext, *parts: Part) -> Turn:
        """Append parts to the conversation and return the model's next turn.

        Raises:
            Any transport or quota error from the model service.
        """
        ...


class ModelClient(ABC):
    """Factory of conversation sessions, injected into Agent.start()."""

    @abstractmethod
    async def create_session(
        self, model: str, config: GenerationConfig
    ) -> ConversationSession:
        """Open a new session for the given model and configuration."""
        ...

    async def generate(
        self, context: CallContext, model: str, config: GenerationConfig, *parts: Part
    ) -> Turn:
        """Single-shot generation in a throwaway session, on behalf of the caller's request."""
        session = await self.create_session(model, config)
        return await session.send(context, *parts)
