"""Delegation adapter: exposes a whole Agent as a single-argument capability."""

import logging
from typing import Any, Optional

from .agent import Agent
from .capability import Capability, FunctionDeclaration
from .context import CallContext
from .logger import ConversationLogger
from .session import ModelClient, TextPart

logger = logging.getLogger(__name__)

QUESTION_PARAMETER = "question"


class DelegatedAgent(Capability):
    """Makes an Agent callable by a parent agent.

    The parent only sees a ``question`` parameter; the delegate's own
    capabilities and session stay private to it.
    """

    def __init__(self, agent: Agent) -> None:
        self.agent = agent
        self._logger: Optional[ConversationLogger] = None

    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name=self.agent.name,
            description=self.agent.description,
            parameters={
                "type": "object",
                "properties": {
                    QUESTION_PARAMETER: {
                        "type": "string",
                        "description": "The question to ask the expert.",
                    },
                },
                "required": [QUESTION_PARAMETER],
            },
            response={"type": "string", "description": "Expert's response."},
        )

    async def start(
        self,
        context: CallContext,
        client: ModelClient,
        conversation_logger: ConversationLogger,
    ) -> None:
        self._logger = conversation_logger
        await self.agent.start(context, client, conversation_logger)

    async def call(self, context: CallContext, args: dict[str, Any]) -> dict[str, Any]:
        question = args.get(QUESTION_PARAMETER)
        if not isinstance(question, str):
            return {"error": f"invalid type got {type(question).__name__}, expected string"}

        if context.in_chain(self.agent.name):
            logger.warning(
                f"Refusing delegation to {self.agent.name}: already in call chain {context.describe_chain()}"
            )
            return {
                "error": f"{self.agent.name} is already working on this request "
                f"({context.describe_chain()}), it cannot be asked recursively"
            }

        self._log_question(question)
        try:
            content = await self.agent.ask(context, TextPart(question))
        except Exception as e:
            return {"error": f"something went wrong while calling the expert: {e}"}

        answer = content.text
        if not answer:
            return {"error": f"{self.agent.name} returned no text output"}

        self._log_response(answer)
        return {"output": answer}

    def _log_question(self, text: str) -> None:
        if self._logger is not None:
            self._logger.log_question(self.agent.name, text)

    def _log_response(self, text: str) -> None:
        if self._logger is not None:
            self._logger.log_response(self.agent.name, text)
