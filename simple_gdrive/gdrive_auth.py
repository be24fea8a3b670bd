"""
Credentials for GoogleDriveClient.

simple-gdrive never runs a consent flow. It reads an authorized-user token
(the JSON google-auth writes with ``Credentials.to_json()``), refreshes the
access token when it has expired and writes the refreshed token back.
Every way this can fail ends in NotAuthenticatedError, chained to the
underlying cause.
"""

import json
import logging
from pathlib import Path

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from .errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]

DEFAULT_TOKEN_DIR = Path.home() / ".simple-gdrive"
DEFAULT_TOKEN_FILE = DEFAULT_TOKEN_DIR / "gdrive-token.json"


def resolve_token_path(token_file: str | None = None) -> Path:
    return Path(token_file).expanduser() if token_file else DEFAULT_TOKEN_FILE


def read_token(token_path: Path) -> Credentials:
    """
    Parse the saved token at ``token_path``.

    Raises:
        NotAuthenticatedError: If the file is missing or is not a usable token.
    """
    try:
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except FileNotFoundError as e:
        raise NotAuthenticatedError(
            f"No Google Drive token at {token_path}. Save an authorized user token there first."
        ) from e
    except (json.JSONDecodeError, ValueError, KeyError) as e:
        raise NotAuthenticatedError(f"Unreadable Google Drive token at {token_path}: {e}") from e
    logger.debug("Read token from %s", token_path)
    return creds


def write_token(creds: Credentials, token_path: Path) -> None:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json(), encoding="utf-8")
    logger.info("Wrote refreshed token to %s", token_path)


def get_credentials(token_file: str | None = None) -> Credentials:
    """
    Return valid credentials from the saved token, refreshing them if needed.

    Raises:
        NotAuthenticatedError: If the token is missing or unreadable, or it
            expired and cannot be refreshed.
    """
    token_path = resolve_token_path(token_file)
    creds = read_token(token_path)
    if creds.valid:
        return creds

    if not creds.refresh_token:
        raise NotAuthenticatedError(f"The token at {token_path} has expired and has no refresh token")

    try:
        creds.refresh(Request())
    except RefreshError as e:
        raise NotAuthenticatedError(f"Could not refresh the token at {token_path}: {e}") from e

    write_token(creds, token_path)
    return creds
