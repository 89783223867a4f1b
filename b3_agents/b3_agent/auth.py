"""OAuth login and token persistence for Google Drive access."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]
DEFAULT_TOKEN_PATH = Path.home() / ".b3" / "token.json"
DEFAULT_CALLBACK_PORT = 8080


class AuthError(Exception):
    """Authentication is missing or could not be completed."""


def _client_config() -> Optional[dict]:
    """Build an OAuth client config from GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET."""
    client_id = os.environ.get("GOOGLE_CLIENT_ID")
    client_secret = os.environ.get("GOOGLE_CLIENT_SECRET")
    if not client_id or not client_secret:
        return None
    return {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }


def login(
    client_secrets_path: Optional[Path] = None,
    token_path: Path = DEFAULT_TOKEN_PATH,
    port: int = DEFAULT_CALLBACK_PORT,
) -> Credentials:
    """Run the browser-based OAuth flow and store the resulting token.

    The OAuth client comes from ``client_secrets_path`` when it exists (a
    "Desktop app" credentials.json), otherwise from the GOOGLE_CLIENT_ID and
    GOOGLE_CLIENT_SECRET environment variables.

    Args:
        client_secrets_path: Path to the downloaded OAuth client file.
        token_path: Where to store the token.
        port: Local port of the OAuth callback server.

    Returns:
        The new credentials.

    Raises:
        AuthError: If no OAuth client is configured or the flow fails.
    """
    if client_secrets_path is not None and client_secrets_path.exists():
        flow = InstalledAppFlow.from_client_secrets_file(str(client_secrets_path), SCOPES)
    else:
        config = _client_config()
        if config is None:
            raise AuthError(
                "no OAuth client configured: provide a client secrets file or set "
                "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET"
            )
        flow = InstalledAppFlow.from_client_config(config, SCOPES)

    print("Your browser should open for you to grant B3 access to your Google Drive...")
    try:
        credentials = flow.run_local_server(
            port=port,
            access_type="offline",
            prompt="consent",
            success_message="Authentication successful! You can now close this window and return to the terminal.",
        )
    except Exception as e:
        raise AuthError(f"authentication failed: {e}") from e

    save_token(credentials, token_path)
    return credentials


def save_token(credentials: Credentials, token_path: Path = DEFAULT_TOKEN_PATH) -> None:
    """Write the token, readable by the current user only."""
    token_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(credentials.to_json())
    logger.info(f"Saved OAuth token to {token_path}")


def load_credentials(token_path: Path = DEFAULT_TOKEN_PATH) -> Credentials:
    """Load the stored token, refreshing it when expired.

    Raises:
        AuthError: If the user never logged in or the token is unusable.
    """
    if not token_path.exists():
        raise AuthError("not logged in. Please run 'b3 --login' to authorize the application")

    try:
        with open(token_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise AuthError("token file is unreadable. Please run 'b3 --login' again") from e

    credentials = Credentials.from_authorized_user_info(data, SCOPES)
    if not credentials.valid:
        if not (credentials.expired and credentials.refresh_token):
            raise AuthError("stored token is invalid. Please run 'b3 --login' again")
        try:
            credentials.refresh(Request())
        except RefreshError as e:
            raise AuthError(f"could not refresh token, please run 'b3 --login' again: {e}") from e
        save_token(credentials, token_path)
    return credentials
