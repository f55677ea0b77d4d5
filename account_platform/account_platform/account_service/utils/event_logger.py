"""
Event logger utility for account events.
"""
from datetime import datetime
from typing import Optional
from fastapi import Request
import sys
import logging
import os

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(message)s"
_SERVICE_HANDLER = "_account_service_handler"

ALLOWED_EVENT_TYPES = {
    "register_success",
    "login_success",
    "login_failure",
    "profile_update",
}


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure stdout logging and, when ``log_dir`` is given, a file log.

    A log directory that cannot be created is reported on stderr and the
    service keeps running with stdout logging only.
    """
    root = logging.getLogger()
    remove_service_handlers()

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(log_dir, "account_events.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _SERVICE_HANDLER, True)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def remove_service_handlers() -> None:
    """Detach and close handlers installed by configure_logging."""
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _SERVICE_HANDLER, False)]:
        root.removeHandler(handler)
        handler.close()


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None

    ip_address = request.client.host if request.client else None

    # Check for X-Forwarded-For header (proxy/load balancer scenarios)
    if not ip_address and request.headers.get("x-forwarded-for"):
        # X-Forwarded-For can contain multiple IPs, take the first one
        ip_address = request.headers.get("x-forwarded-for").split(",")[0].strip()

    return ip_address


def log_account_event(
    event_type: str,
    user_id: Optional[str],
    email: Optional[str],
    request: Optional[Request] = None,
    metadata: Optional[dict] = None,
) -> dict:
    """
    Log an account event.

    Args:
        event_type: One of: register_success, login_success, login_failure,
                    profile_update
        user_id: Id of the user concerned, None when the email is unknown
        email: Email the event refers to
        request: FastAPI Request object, used for client IP and user agent
        metadata: Optional dictionary of additional context

    Returns:
        The event as logged

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    event = {
        "event_type": event_type,
        "user_id": user_id,
        "email": email,
        "ip_address": client_ip(request),
        "user_agent": request.headers.get("user-agent") if request is not None else None,
        "timestamp": datetime.utcnow().isoformat(),
        "metadata": metadata or {},
    }

    level = logging.WARNING if event_type == "login_failure" else logging.INFO
    logger.log(
        level,
        "ACCOUNT %s user_id=%s email=%s ip=%s timestamp=%s metadata=%s",
        event_type, user_id, email, event["ip_address"], event["timestamp"], event["metadata"],
    )
    return event
