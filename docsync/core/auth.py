"""Shared-secret authentication for the cron endpoints.

The secret may arrive as a ``token`` query parameter, an ``X-Cron-Secret``
header or an ``Authorization: Bearer`` header.
"""

import hmac
from typing import Optional

from fastapi import Depends, Header, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docsync.config import Settings
from docsync.dependencies import get_app_settings
from docsync.utils.exceptions import CronAuthError
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def incoming_cron_token(
    token: Optional[str],
    header_secret: Optional[str],
    credentials: Optional[HTTPAuthorizationCredentials],
) -> tuple:
    """Pick the presented secret and where it came from.

    Returns:
        (token, source) with source one of "query", "header", "auth", "none"
    """
    if token:
        return token, "query"
    if header_secret:
        return header_secret, "header"
    if credentials and credentials.credentials:
        return credentials.credentials, "auth"
    return "", "none"


async def verify_cron_secret(
    settings: Settings = Depends(get_app_settings),
    token: Optional[str] = Query(None, description="Cron shared secret"),
    x_cron_secret: Optional[str] = Header(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Reject the request unless it presents the configured cron secret.

    Raises:
        CronAuthError: 500 when no secret is configured, 401 when the presented one does not match
    """
    if not settings.cron_secret:
        LOGGER.warning("CRON_SECRET is not configured")
        raise CronAuthError(
            "CRON_SECRET is not set on server",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    incoming, source = incoming_cron_token(token, x_cron_secret, credentials)
    if not incoming or not hmac.compare_digest(
        incoming.encode("utf-8"), settings.cron_secret.encode("utf-8")
    ):
        LOGGER.warning("Invalid cron token", extra={"source": source})
        raise CronAuthError("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)
