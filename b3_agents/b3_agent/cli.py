"""Command line entry point: login, listing, and the interactive B3 session."""

import argparse
import asyncio
import json
import logging
import sys
import textwrap
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, TextIO

from dotenv import load_dotenv

from ..core import Agent, B3Error, CallContext, ConversationLogger, ModelClient, TextPart
from ..core.anthropic_session import AnthropicModelClient
from .agent import create_b3_agent
from .auth import AuthError, load_credentials, login
from .config import B3Config
from .drive import DriveApp, DriveError

logger = logging.getLogger(__name__)

NAME_WIDTH = 20
WRAP_WIDTH = 80
MIN_TEXT_WIDTH = 20

WELCOME = "Welcome! I am B3, ready to assist you with your documents."
EXIT_HINT = "Type 'bye' or press Ctrl+D to exit."
PROMPT = "> "
EXIT_COMMAND = "bye"


class TerminalConversationLogger(ConversationLogger):
    """Prints the conversation flow, one name-prefixed and word-wrapped block per event.

    Example::

                      B3: Calling B3Files
                 B3Files> Fetch file list from B3 folder.
    """

    def __init__(self, stream: Optional[TextIO] = None, width: int = WRAP_WIDTH):
        self.stream = stream or sys.stdout
        self.width = width

    def log_question(self, source_name: str, text: str) -> None:
        self._write(source_name, ">", text)

    def log_response(self, source_name: str, text: str) -> None:
        self._write(source_name, ":", text)

    def format(self, source_name: str, marker: str, text: str) -> str:
        first_prefix = f"{source_name:>{NAME_WIDTH}}{marker} "
        indent = " " * (NAME_WIDTH + 2)
        text_width = max(self.width - len(first_prefix), MIN_TEXT_WIDTH)

        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            lines.extend(textwrap.wrap(paragraph, text_width) or [""])
        return "\n".join(
            (first_prefix if i == 0 else indent) + line for i, line in enumerate(lines)
        )

    def _write(self, source_name: str, marker: str, text: str) -> None:
        print(self.format(source_name, marker, text), file=self.stream, flush=True)


def setup_logging(config: B3Config, verbose: bool = False) -> None:
    """Configure console logging and the dated log file.

    Without ``verbose`` only warnings reach the console and the file.
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO) if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger().setLevel(level)
    if not verbose:
        # The HTTP stack is chatty at INFO.
        logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Cannot create log directory {config.log_dir}: {e}")
        return

    log_file = config.log_dir / f"b3_{datetime.now():%Y%m%d}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logging.getLogger().addHandler(file_handler)
    logger.info("B3 logging initialized")


async def run_session(
    agent: Agent,
    client: ModelClient,
    questions: Sequence[str] = (),
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    conversation_logger: Optional[ConversationLogger] = None,
) -> None:
    """Run the interactive loop.

    Questions given on the command line are answered first, then lines are
    read from ``stdin`` until ``bye`` or end of file.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    conversation_logger = conversation_logger or TerminalConversationLogger(stdout)

    def show(text: str) -> None:
        print(text, file=stdout, flush=True)

    await agent.start(CallContext(), client, conversation_logger)

    show(WELCOME)
    show(EXIT_HINT)

    pending = list(questions)
    while True:
        print(PROMPT, end="", file=stdout, flush=True)
        if pending:
            question = pending.pop(0).strip()
            if not question:
                show("")
                continue
            show(question)
        else:
            line = await asyncio.to_thread(stdin.readline)
            if not line:
                show("")
                return
            question = line.strip()
            if not question:
                continue

        if question == EXIT_COMMAND:
            return

        try:
            turn = await agent.ask(CallContext(), TextPart(question), on_text=show)
        except B3Error as e:
            logger.error(f"Request failed: {e}")
            show(f"Sorry, something went wrong: {e}")
            continue

        for text in turn.texts:
            show(text)


def open_drive(config: B3Config) -> DriveApp:
    credentials = load_credentials(config.token_path)
    return DriveApp.from_credentials(
        credentials, b3_folder=config.b3_folder, b4_folder=config.b4_folder
    )


def cmd_login(config: B3Config) -> int:
    try:
        login(config.client_secrets_path, config.token_path, config.oauth_port)
    except AuthError as e:
        print(f"Authentication failed: {e}", file=sys.stderr)
        return 1
    print("Successfully logged in. B3 is now authorized to access your Google Drive.")
    return 0


def cmd_list(config: B3Config) -> int:
    try:
        app = open_drive(config)
        files = app.b3_files()
    except (AuthError, DriveError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(json.dumps([f.to_dict() for f in files], indent=2, ensure_ascii=False))
    return 0


def cmd_chat(config: B3Config, questions: Sequence[str]) -> int:
    try:
        app = open_drive(config)
    except (AuthError, DriveError) as e:
        print(f"Error initializing B3: {e}", file=sys.stderr)
        return 1

    print(f"B3 is getting ready, scanning {config.b3_folder} and {config.b4_folder} folders...", file=sys.stderr)
    try:
        b3_files = app.b3_files()
        b4_files = app.b4_files()
    except DriveError as e:
        print(f"Error listing files: {e}", file=sys.stderr)
        return 1

    agent = create_b3_agent(app, config, b3_files, b4_files)
    try:
        asyncio.run(run_session(agent, AnthropicModelClient(), questions))
    except KeyboardInterrupt:
        print()
    except (B3Error, ValueError) as e:
        print(f"\nAn error occurred: {e}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="b3",
        description=(
            "B3: The Bureaucratic Barriers Buster. A chat-first intelligent agent for your "
            "documents. Run without flags to start a conversational session."
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Print logs")
    parser.add_argument(
        "--login", action="store_true", help="Authorize the B3 CLI to access your Google Drive."
    )
    parser.add_argument(
        "--list", action="store_true", help="List files in your B3 Google Drive folder as JSON."
    )
    parser.add_argument("--config", type=Path, help="Path to the JSON configuration file.")
    parser.add_argument("questions", nargs="*", help="Questions to ask before the interactive session.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the ``b3`` command."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    config_path = args.config or B3Config.default_config_path()
    config = B3Config.from_file(config_path.expanduser())
    setup_logging(config, args.verbose)
    logger.info(f"Loaded configuration from {config_path}")

    if args.login:
        return cmd_login(config)
    if args.list:
        return cmd_list(config)
    return cmd_chat(config, args.questions)
