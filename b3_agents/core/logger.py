"""Observability hook for the flow of questions, responses and calls."""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class ConversationLogger(ABC):
    """Receives the interactions between the model, its experts and its tools.

    Implementations must not raise and must not block for long: the hook is
    purely observational.
    """

    @abstractmethod
    def log_question(self, source_name: str, text: str) -> None:
        """Record text sent to ``source_name``."""
        ...

    @abstractmethod
    def log_response(self, source_name: str, text: str) -> None:
        """Record text produced by or about ``source_name``."""
        ...


class LoggingConversationLogger(ConversationLogger):
    """Forwards conversation events to the standard logging module."""

    def __init__(self, log: logging.Logger = logger, level: int = logging.INFO):
        self._log = log
        self._level = level

    def log_question(self, source_name: str, text: str) -> None:
        self._log.log(self._level, f"{source_name}> {text}")

    def log_response(self, source_name: str, text: str) -> None:
        self._log.log(self._level, f"{source_name}: {text}")
