"""Core orchestration engine for B3 agents."""

from .agent import Agent, AgentConfig
from .capability import (
    Capability,
    FunctionDeclaration,
    LeafTool,
    ToolError,
    optional_str,
    require_str,
    require_str_list,
)
from .context import CallBudget, CallContext
from .delegation import DelegatedAgent
from .errors import (
    B3Error,
    CallBudgetExceeded,
    CapabilityStartError,
    SessionError,
    UnknownCapabilityError,
)
from .logger import ConversationLogger, LoggingConversationLogger
from .registry import CapabilityRegistry
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

__all__ = [
    "Agent",
    "AgentConfig",
    "Capability",
    "FunctionDeclaration",
    "LeafTool",
    "ToolError",
    "optional_str",
    "require_str",
    "require_str_list",
    "CallBudget",
    "CallContext",
    "DelegatedAgent",
    "B3Error",
    "CallBudgetExceeded",
    "CapabilityStartError",
    "SessionError",
    "UnknownCapabilityError",
    "ConversationLogger",
    "LoggingConversationLogger",
    "CapabilityRegistry",
    "BlobPart",
    "CallRequest",
    "CallResponse",
    "ConversationSession",
    "GenerationConfig",
    "ModelClient",
    "OpaquePart",
    "Part",
    "TextPart",
    "Turn",
]
