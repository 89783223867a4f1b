"""Assembly of the B3 agent and its admin expert."""

import json
import logging
from typing import Optional

from ..core import Agent, AgentConfig, DelegatedAgent
from .config import B3Config
from .drive import DriveApp, DriveFile
from .prompts import ADMIN_EXPERT_PROMPT, SYSTEM_PROMPT
from .tools import (
    B3FilesTool,
    B4DeleteTool,
    B4FilesTool,
    B4MergeTool,
    CreateDocTool,
    DownloadToB4Tool,
    ExtractFormTool,
    FillFormTool,
    ReadFileTool,
    UpdateFileTool,
)

logger = logging.getLogger(__name__)

B3_AGENT_NAME = "B3"
ADMIN_EXPERT_NAME = "AdminExpert"


def format_index(files: list[DriveFile]) -> str:
    """Render a folder index for the system prompt."""
    return json.dumps([f.to_dict() for f in files], indent=2, ensure_ascii=False)


def build_system_prompt(
    config: B3Config,
    b3_files: list[DriveFile],
    b4_files: list[DriveFile],
) -> str:
    return SYSTEM_PROMPT.format(
        b3_folder=config.b3_folder,
        b4_folder=config.b4_folder,
        b3_index=format_index(b3_files),
        b4_index=format_index(b4_files),
    )


def create_admin_expert(config: Optional[B3Config] = None) -> Agent:
    """
    Factory function to create the administrative procedures expert.

    The expert has no tools of its own, only the model's built-in web search.

    Args:
        config: B3 configuration. If None, uses defaults.

    Returns:
        Configured expert Agent, not yet started.
    """
    config = config or B3Config()
    return Agent(
        name=ADMIN_EXPERT_NAME,
        description=(
            "An expert in administrative procedures. Ask it for an up-to-date, step-by-step plan "
            "and the list of required documents for any bureaucratic task."
        ),
        config=AgentConfig(
            model=config.expert_model,
            system_instruction=ADMIN_EXPERT_PROMPT,
            max_tokens=config.max_tokens,
            builtin_tools=config.builtin_tools,
            max_calls=config.max_calls,
        ),
    )


def create_b3_agent(
    app: DriveApp,
    config: Optional[B3Config] = None,
    b3_files: Optional[list[DriveFile]] = None,
    b4_files: Optional[list[DriveFile]] = None,
) -> Agent:
    """
    Factory function to create the top-level B3 agent.

    Args:
        app: Drive wrapper the tools operate on.
        config: B3 configuration. If None, uses defaults.
        b3_files: Index of the B3 folder at startup, embedded in the prompt.
        b4_files: Index of the B4 folder at startup, embedded in the prompt.

    Returns:
        Configured Agent, not yet started.
    """
    config = config or B3Config()
    b3_files = b3_files or []
    b4_files = b4_files or []
    logger.info(f"Creating B3 agent with {len(b3_files)} B3 files and {len(b4_files)} B4 files indexed")
    capabilities = [
        B3FilesTool(app),
        B4FilesTool(app),
        ReadFileTool(app, config.reader_model, config.max_tokens),
        UpdateFileTool(app),
        B4DeleteTool(app),
        B4MergeTool(app),
        ExtractFormTool(app),
        FillFormTool(app),
        CreateDocTool(app),
        DownloadToB4Tool(app),
        DelegatedAgent(create_admin_expert(config)),
    ]
    return Agent(
        name=B3_AGENT_NAME,
        description="Bureaucratic Barriers Buster, a personal data assistant.",
        config=AgentConfig(
            model=config.model,
            system_instruction=build_system_prompt(config, b3_files, b4_files),
            max_tokens=config.max_tokens,
            max_calls=config.max_calls,
            dispatch_all_calls=config.dispatch_all_calls,
        ),
        capabilities=capabilities,
    )
