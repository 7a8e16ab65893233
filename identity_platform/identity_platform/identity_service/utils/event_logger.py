"""
Event logger utility for authentication events.
"""
from datetime import datetime
from typing import Optional
from fastapi import Request
import sys
import logging
import os

from ..config import Settings

logger = logging.getLogger(__name__)


ALLOWED_EVENT_TYPES = {
    "signup",
    "login_success",
    "login_failure",
    "token_refresh",
    "password_reset_request",
    "password_reset",
}


def configure_logging(settings: Settings) -> None:
    """
    Configure stdout logging and, when LOG_DIR is set, a file handler.

    File logging is optional: if the directory cannot be created the service
    keeps running with stdout only. Does nothing when the root logger
    already has handlers (for example under uvicorn or pytest).
    """
    if logging.getLogger().handlers:
        return

    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.LOG_DIR:
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(settings.LOG_DIR, "auth_events.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s:%(message)s",
        handlers=handlers,
    )


def client_ip(request: Request) -> Optional[str]:
    # X-Forwarded-For can contain multiple IPs, take the first one
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def log_auth_event(
    event_type: str,
    user_id: Optional[str],
    request: Request,
    metadata: dict = None
) -> None:
    """
    Log an authentication event.

    Args:
        event_type: One of ALLOWED_EVENT_TYPES
        user_id: Id of the user concerned, or None when unknown
        request: FastAPI Request object
        metadata: Optional dictionary of additional context

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    logger.info(
        "AUTH %s user_id=%s ip=%s user_agent=%s timestamp=%s metadata=%s",
        event_type,
        user_id,
        client_ip(request),
        request.headers.get("user-agent"),
        datetime.utcnow().isoformat(),
        metadata or {},
    )
