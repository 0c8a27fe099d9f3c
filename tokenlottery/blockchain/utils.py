import os
import logging
from typing import Any, Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Ensure environment variables from .env are loaded when this module is imported.
load_dotenv()


def _resolve_fqdn(fqdn: Optional[str]) -> str:
    resolved = fqdn or os.environ.get("BLOCKCHAIN_BASE_FQDN")
    if not resolved:
        raise RuntimeError("Environment variable 'BLOCKCHAIN_BASE_FQDN' is not set")
    return resolved


def open_session(fqdn: Optional[str] = None):
    """Open a requests session to the chain gateway and fetch CSRF.

    Parameters
    ----------
    fqdn : str, optional
        Gateway host. Defaults to ``BLOCKCHAIN_BASE_FQDN``.

    Returns
    -------
    tuple[requests.Session, str]
        The initialized session and CSRF token string.

    Raises
    ------
    RuntimeError
        If no host is configured or the session cannot be established,
        including when the server returns no cookies or no CSRF token. Any
        underlying exception is re-raised as a ``RuntimeError`` with context.
    """
    url = "https://" + _resolve_fqdn(fqdn)

    session = requests.Session()
    try:
        response = session.get(url)
        response.raise_for_status()

        cookies = session.cookies
        if cookies:
            # Do not log cookie values; just count for diagnostics.
            logger.debug(f"Received {len(cookies)} cookies from server")
        else:
            raise RuntimeError("Server did not return any cookies")

        csrf_token = response.cookies.get("csrftoken")
        if csrf_token:
            logger.debug("CSRF token acquired")
            return session, csrf_token
        else:
            raise RuntimeError("Server did not return a CSRF token")

    except Exception as e:
        logger.critical(f"Error occurred while starting session: {e}")
        raise RuntimeError(f"Failed to establish session: {e}") from e


def get_jwt_token(session: requests.Session, fqdn: Optional[str] = None) -> str:
    """Obtain a JWT access token using the lottery authority's credentials.

    Parameters
    ----------
    session : requests.Session
        A live session for the chain gateway.
    fqdn : str, optional
        Gateway host. Defaults to ``BLOCKCHAIN_BASE_FQDN``.

    Returns
    -------
    str
        The JWT access token string.

    Raises
    ------
    RuntimeError
        If required environment variables are not set.
    requests.HTTPError
        If the login request fails.
    KeyError, ValueError
        If the response payload does not include an ``"access"`` field or is malformed.
    """
    credential = {
        "username": os.environ.get("BLOCKCHAIN_ADMIN_USERNAME"),
        "password": os.environ.get("BLOCKCHAIN_ADMIN_PASSWORD"),
    }
    if not credential["username"] or not credential["password"]:
        raise RuntimeError(
            "Environment variables 'BLOCKCHAIN_ADMIN_USERNAME' and "
            "'BLOCKCHAIN_ADMIN_PASSWORD' must be set"
        )
    # Never log raw credentials
    logger.debug("Attempting JWT login with configured admin username")

    url = "https://" + _resolve_fqdn(fqdn) + "/api/v1/auth/jwt-token"
    response = session.post(url, json=credential)
    response.raise_for_status()

    # Avoid logging headers/body/response as they may contain sensitive data
    logger.debug("JWT token response received (content redacted)")

    return response.json()["access"]


def parse_reveal_value(raw: Any) -> int:
    """Convert a revealed value from the gateway into an integer.

    Accepts integers, decimal strings and ``0x``-prefixed hex strings (the
    gateway's encoding of 32-byte oracle outputs).
    """
    if isinstance(raw, bool):
        raise ValueError("Reveal value must not be a boolean")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if text.lower().startswith("0x"):
            value = int(text[2:], 16)
        else:
            value = int(text, 10)
    else:
        raise ValueError(f"Unsupported reveal value: {raw!r}")
    if value < 0:
        raise ValueError("Reveal value must be non-negative")
    return value
