"""Capability registry: name-indexed lookup plus the schema shown to the model."""

import logging
from typing import Iterable, Optional

from .capability import Capability, FunctionDeclaration
from .context import CallContext
from .errors import CapabilityStartError, UnknownCapabilityError
from .logger import ConversationLogger
from .session import ModelClient

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Per-agent mapping from capability name to capability.

    Built once at startup and read-only afterwards. When two capabilities
    declare the same name the later one wins; the name keeps the position of
    its first declaration in ``schemas``.
    """

    def __init__(self) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._declarations: dict[str, FunctionDeclaration] = {}

    @classmethod
    async def build(
        cls,
        capabilities: Iterable[Capability],
        context: CallContext,
        client: ModelClient,
        conversation_logger: ConversationLogger,
    ) -> "CapabilityRegistry":
        """Start every capability and index it by its declared name.

        Args:
            capabilities: Capabilities in declaration order.
            context: Startup call context.
            client: Model client handed to each capability.
            conversation_logger: Observability hook handed to each capability.

        Returns:
            A fully started registry.

        Raises:
            CapabilityStartError: If any capability fails to start.
        """
        registry = cls()
        for capability in capabilities:
            declaration = capability.declare()
            try:
                await capability.start(context, client, conversation_logger)
            except Exception as e:
                raise CapabilityStartError(declaration.name, e) from e
            registry._register(declaration, capability)
        return registry

    def _register(self, declaration: FunctionDeclaration, capability: Capability) -> None:
        if declaration.name in self._capabilities:
            logger.warning(f"Capability {declaration.name!r} declared twice, keeping the last one")
        self._capabilities[declaration.name] = capability
        self._declarations[declaration.name] = declaration

    def get(self, name: str) -> Optional[Capability]:
        """Get a capability by name, None if unknown."""
        return self._capabilities.get(name)

    def require(self, name: str) -> Capability:
        """Get a capability by name.

        Raises:
            UnknownCapabilityError: If nothing is registered under ``name``.
        """
        capability = self._capabilities.get(name)
        if capability is None:
            raise UnknownCapabilityError(name)
        return capability

    @property
    def schemas(self) -> list[FunctionDeclaration]:
        return list(self._declarations.values())

    def names(self) -> list[str]:
        return list(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)
