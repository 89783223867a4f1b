"""B3 - The Bureaucratic Barriers Buster, a Google Drive document assistant."""

from .agent import create_admin_expert, create_b3_agent
from .config import B3Config, load_config
from .drive import DriveApp, DriveError, DriveFile

__all__ = [
    "create_admin_expert",
    "create_b3_agent",
    "B3Config",
    "load_config",
    "DriveApp",
    "DriveError",
    "DriveFile",
]

__version__ = "1.0.0"
