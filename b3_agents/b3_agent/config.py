"""Configuration for the B3 agent."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..core.agent import DEFAULT_MODEL

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}


@dataclass
class B3Config:
    """Configuration for the B3 agent and its experts."""

    # Model settings
    model: str = DEFAULT_MODEL
    expert_model: str = DEFAULT_MODEL
    reader_model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    max_calls: int = 25
    dispatch_all_calls: bool = False
    web_search: bool = True

    # Drive settings
    b3_folder: str = "B3"
    b4_folder: str = "B4"
    token_path: Path = Path.home() / ".b3" / "token.json"
    client_secrets_path: Optional[Path] = None
    oauth_port: int = 8080

    # Logging settings
    log_dir: Path = Path.home() / ".b3" / "logs"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Ensure paths are Path objects."""
        if not isinstance(self.token_path, Path):
            self.token_path = Path(self.token_path).expanduser()
        if self.client_secrets_path is not None and not isinstance(self.client_secrets_path, Path):
            self.client_secrets_path = Path(self.client_secrets_path).expanduser()
        if not isinstance(self.log_dir, Path):
            self.log_dir = Path(self.log_dir).expanduser()

    @property
    def builtin_tools(self) -> list[dict[str, Any]]:
        """Server-side tools given to the experts."""
        return [dict(WEB_SEARCH_TOOL)] if self.web_search else []

    @classmethod
    def from_file(cls, path: Path) -> "B3Config":
        """Load configuration from a JSON file.

        Supports both a nested structure with ``agent``, ``drive`` and
        ``logging`` sections and a flat structure with every field at the
        root level.

        Args:
            path: Path to the configuration file.

        Returns:
            B3Config with values from the file, falling back to defaults for
            missing fields, or defaults when the file is missing or corrupted.
        """
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            return cls()
        if not isinstance(data, dict):
            return cls()

        if any(key in data for key in ("agent", "drive", "logging")):
            data = cls._flatten(data)
        return cls._from_flat(data)

    @staticmethod
    def _flatten(data: dict) -> dict:
        """Turn the nested format into the flat one."""
        flat: dict = {}
        flat.update(data.get("agent", {}))
        flat.update(data.get("drive", {}))
        logging_section = data.get("logging", {})
        if "dir" in logging_section:
            flat["log_dir"] = logging_section["dir"]
        if "level" in logging_section:
            flat["log_level"] = logging_section["level"]
        return flat

    @classmethod
    def _from_flat(cls, data: dict) -> "B3Config":
        defaults = cls()
        return cls(
            model=data.get("model", defaults.model),
            expert_model=data.get("expert_model", data.get("model", defaults.expert_model)),
            reader_model=data.get("reader_model", data.get("model", defaults.reader_model)),
            max_tokens=data.get("max_tokens", defaults.max_tokens),
            max_calls=data.get("max_calls", defaults.max_calls),
            dispatch_all_calls=data.get("dispatch_all_calls", defaults.dispatch_all_calls),
            web_search=data.get("web_search", defaults.web_search),
            b3_folder=data.get("b3_folder", defaults.b3_folder),
            b4_folder=data.get("b4_folder", defaults.b4_folder),
            token_path=data.get("token_path", defaults.token_path),
            client_secrets_path=data.get("client_secrets_path"),
            oauth_port=data.get("oauth_port", defaults.oauth_port),
            log_dir=data.get("log_dir", defaults.log_dir),
            log_level=data.get("log_level", defaults.log_level),
        )

    @classmethod
    def default_config_path(cls) -> Path:
        """Return the configuration path, overridable with B3_CONFIG."""
        override = os.environ.get("B3_CONFIG")
        if override:
            return Path(override).expanduser()
        return Path.home() / ".b3" / "config.json"


def load_config() -> B3Config:
    """Load the B3 configuration from the default path."""
    return B3Config.from_file(B3Config.default_config_path())
