"""Agent: one model session, one capability registry, and the ask loop."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from .capability import Capability
from .context import CallContext
from .errors import B3Error, SessionError, UnknownCapabilityError
from .logger import ConversationLogger, LoggingConversationLogger
from .registry import CapabilityRegistry
from .session import (
    CallRequest,
    CallResponse,
    ConversationSession,
    GenerationConfig,
    ModelClient,
    Part,
    TextPart,
    Turn,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

TextSink = Callable[[str], None]


@dataclass
class AgentConfig:
    """Model configuration for one agent."""

    model: str = DEFAULT_MODEL
    system_instruction: Optional[str] = None
    max_tokens: int = 4096
    builtin_tools: list[dict[str, Any]] = field(default_factory=list)

    # Maximum capability calls per top-level ask, delegates included.
    max_calls: int = 25
    # Execute every call request of a turn instead of only the first one.
    dispatch_all_calls: bool = False

    def generation_config(self) -> GenerationConfig:
        return GenerationConfig(
            system_instruction=self.system_instruction,
            max_tokens=self.max_tokens,
            builtin_tools=list(self.builtin_tools),
        )


class Agent:
    """A conversational unit bound to one model session and one registry.

    The agent owns its session exclusively. Asks are serialized: the session
    holds ordered history and cannot serve two conversations at once.
    """

    def __init__(
        self,
        name: str,
        description: str,
        config: Optional[AgentConfig] = None,
        capabilities: Sequence[Capability] = (),
    ) -> None:
        self.name = name
        self.description = description
        self.config = config or AgentConfig()
        self.capabilities = list(capabilities)

        self.generation_config: Optional[GenerationConfig] = None
        self._registry: Optional[CapabilityRegistry] = None
        self._session: Optional[ConversationSession] = None
        self._logger: ConversationLogger = LoggingConversationLogger()
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._session is not None

    @property
    def registry(self) -> CapabilityRegistry:
        if self._registry is None:
            raise RuntimeError(f"agent {self.name!r} is not started")
        return self._registry

    async def start(
        self,
        context: CallContext,
        client: ModelClient,
        conversation_logger: ConversationLogger,
    ) -> None:
        """Start the capabilities, then open the agent's session.

        Raises:
            CapabilityStartError: If a capability fails to start.
            SessionError: If the model service refuses to open the session.
        """
        if self.started:
            return
        self._logger = conversation_logger
        registry = await CapabilityRegistry.build(
            self.capabilities, context, client, conversation_logger
        )

        generation_config = self.config.generation_config()
        generation_config.tools = registry.schemas
        try:
            session = await client.create_session(self.config.model, generation_config)
        except Exception as e:
            raise SessionError(self.name, e) from e

        self._registry = registry
        self.generation_config = generation_config
        self._session = session
        logger.info(f"Agent {self.name} started with {len(registry)} capabilities")

    async def ask(
        self,
        context: CallContext,
        *parts: Part,
        on_text: Optional[TextSink] = None,
    ) -> Turn:
        """Send parts to the model and resolve call requests until it answers with text.

        Args:
            context: Call context of the request.
            *parts: Input parts (text, blobs).
            on_text: Receives text that accompanies call requests, as soon as
                it is seen. Discarded when None.

        Returns:
            The final, call-free turn. Its parts may be empty.

        Raises:
            SessionError: The model service failed.
            UnknownCapabilityError: The model called an unregistered name.
            CallBudgetExceeded: Too many calls were chained.
        """
        if self._session is None:
            raise RuntimeError(f"agent {self.name!r} is not started")
        context = context.with_budget(self.config.max_calls).enter(self.name)
        async with self._lock:
            return await self._resolve(context, list(parts), on_text)

    async def _resolve(
        self,
        context: CallContext,
        parts: list[Part],
        on_text: Optional[TextSink],
    ) -> Turn:
        try:
            turn = await self._session.send(context, *parts)
        except Exception as e:
            error = SessionError(self.name, e)
            self._fatal(error)
            raise error from e

        if turn.is_terminal:
            return turn

        requests: list[CallRequest] = []
        for index, part in enumerate(turn.parts):
            if isinstance(part, TextPart) and part.text:
                if on_text is not None:
                    on_text(part.text)
            elif isinstance(part, CallRequest):
                requests.append(part)
                if not self.config.dispatch_all_calls:
                    # Scanning stops at the first call.
                    ignored = [p.name for p in turn.parts[index + 1 :] if isinstance(p, CallRequest)]
                    if ignored:
                        logger.warning(f"{self.name}: ignoring extra calls to {ignored}")
                    break

        # Every name is checked before anything runs.
        for request in requests:
            if request.name not in self.registry:
                error = UnknownCapabilityError(request.name)
                self._fatal(error)
                raise error

        responses: list[Part] = []
        for request in requests:
            responses.append(await self._dispatch(context, request))

        return await self._resolve(context, responses, on_text)

    async def _dispatch(self, context: CallContext, request: CallRequest) -> CallResponse:
        capability = self.registry.require(request.name)
        try:
            context.budget.charge()
        except B3Error as e:
            self._fatal(e)
            raise

        logger.info(f"{self.name}: calling {request.name}({request.arguments})")
        self._logger.log_response(self.name, f"Calling {request.name}")

        payload = await capability.call(context, request.arguments)
        response = CallResponse.for_request(request, payload)

        if response.is_error:
            logger.info(f"{self.name}: {request.name} returned an error: {payload['error']}")
        self._logger.log_question(self.name, f"Processing {request.name}'s response")
        return response

    def _fatal(self, error: B3Error) -> None:
        logger.error(f"{self.name}: {error}")
        self._logger.log_response(self.name, f"Error: {error}")
