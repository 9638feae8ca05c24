# File: autoscheduler/auth/google_auth.py
"""
Google API authentication module.
Handles the OAuth2 flow and the cached calendar credentials.
"""

from typing import Optional
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError

from autoscheduler.core.config_manager import Config
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


def _save_token(creds: Credentials) -> None:
    with open(Config.TOKEN_FILE, "w") as token_file:
        token_file.write(creds.to_json())


def _authenticate() -> Optional[Credentials]:
    """
    Load cached credentials, refreshing them when expired.

    Returns:
        Credentials object or None if no usable token exists
    """
    creds = None

    if Config.TOKEN_FILE.exists():
        logger.debug(f"Loading existing token from {Config.TOKEN_FILE}")
        creds = Credentials.from_authorized_user_file(
            str(Config.TOKEN_FILE),
            Config.GOOGLE_SCOPES
        )

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.info("Refreshing expired credentials")
        try:
            creds.refresh(Request())
        except Exception as e:
            logger.error(f"Error refreshing token: {e}", exc_info=True)
            logger.warning("Deleting invalid token file")
            Config.TOKEN_FILE.unlink(missing_ok=True)
            return None
        _save_token(creds)
        return creds

    logger.warning("No valid credentials found")
    return None


def create_initial_token() -> bool:
    """
    Run the interactive, browser-based consent flow and cache the token.

    Returns:
        True if authentication succeeded
    """
    logger.info("Starting interactive authentication flow")

    if not Config.CREDENTIALS_FILE.exists():
        logger.error(f"credentials.json not found at {Config.CREDENTIALS_FILE}")
        logger.error("Download an OAuth client file from Google Cloud Console and place it in the project root")
        return False

    try:
        flow = InstalledAppFlow.from_client_secrets_file(
            str(Config.CREDENTIALS_FILE),
            Config.GOOGLE_SCOPES
        )
        logger.info("Opening browser for authentication...")
        creds = flow.run_local_server(port=0)
        _save_token(creds)
        logger.info(f"Authentication successful! Token saved to {Config.TOKEN_FILE}")
        return True
    except Exception as e:
        logger.error(f"Authentication flow failed: {e}", exc_info=True)
        return False


def get_calendar_service() -> Optional[Resource]:
    """
    Build an authenticated Calendar v3 resource from the cached token.

    Returns:
        Calendar API resource, or None if authentication fails
    """
    logger.info("Initializing Google Calendar service")

    creds = _authenticate()
    if not creds:
        logger.error("token.json is missing or invalid")
        logger.error("Please run 'python scripts/setup.py' to authenticate")
        return None

    try:
        service = build("calendar", "v3", credentials=creds)
        logger.info("Calendar service initialized")
        return service
    except HttpError as err:
        logger.error(f"HTTP error occurred building the calendar service: {err}", exc_info=True)
        return None
    except Exception as err:
        logger.error(f"Unexpected error building the calendar service: {err}", exc_info=True)
        return None
