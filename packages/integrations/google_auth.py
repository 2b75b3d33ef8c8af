"""
Google credentials and HTTP error translation shared by the Gmail and
Sheets adapters.

Token acquisition (the browser OAuth flow) happens outside this service:
callers either pass a user access token or configure a service account.
"""
import json
from typing import Optional

import structlog
from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account
from googleapiclient.errors import HttpError

from packages.common.errors import AuthenticationError, CollaboratorError

logger = structlog.get_logger()

SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
]


def build_credentials(
    access_token: Optional[str] = None,
    service_account_json: Optional[str] = None,
    impersonate_email: Optional[str] = None,
):
    """
    Build Google credentials.

    Args:
        access_token: OAuth access token obtained by the client (preferred)
        service_account_json: Path to, or inline JSON of, a service account key
        impersonate_email: Mailbox to act as (domain-wide delegation)

    Returns:
        google.auth credentials usable by googleapiclient.discovery.build

    Raises:
        AuthenticationError: If neither credential source is configured
    """
    if access_token:
        return user_credentials.Credentials(token=access_token, scopes=SCOPES)

    if not service_account_json:
        raise AuthenticationError("google", "No access token or service account configured", 401)

    if service_account_json.lstrip().startswith("{"):
        creds = service_account.Credentials.from_service_account_info(
            json.loads(service_account_json), scopes=SCOPES
        )
    else:
        creds = service_account.Credentials.from_service_account_file(
            service_account_json, scopes=SCOPES
        )

    if impersonate_email:
        creds = creds.with_subject(impersonate_email)

    logger.info("google_service_account_loaded", impersonating=impersonate_email)
    return creds


def translate_http_error(collaborator: str, exc: HttpError) -> CollaboratorError:
    """Map a googleapiclient HttpError onto the core error taxonomy"""
    status = getattr(exc.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    if status in (401, 403):
        return AuthenticationError(collaborator, f"Credentials rejected ({status})", status)
    return CollaboratorError(collaborator, str(exc), status)
