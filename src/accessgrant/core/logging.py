"""structlog setup and request-scoped log context."""

import logging
import re
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars
from structlog.typing import EventDict, WrappedLogger

REDACTED = "[redacted]"

# The raw invitation token is the path segment after /invites/t/
_TOKEN_IN_PATH = re.compile(r"(/invites/t/)[^/?#]+")

ACCESS_LOGGER = "uvicorn.access"

# Event keys whose values are bearer secrets: a raw invitation token opens the
# invitation, and the invite URL embeds one.
SECRET_KEYS = frozenset({"token", "raw_token", "invite_url", "password", "authorization"})


def redact_secrets(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """structlog processor replacing secret-bearing values before rendering."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def loggable_path(path: str) -> str:
    """Request path with any invitation token replaced by a placeholder."""
    return _TOKEN_IN_PATH.sub(r"\1{token}", path)


class TokenPathFilter(logging.Filter):
    """Rewrite token-bearing paths in stdlib records before they are formatted.

    uvicorn's access logger passes the request path as a positional argument
    (client, method, path, http version, status).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple):
            record.args = tuple(
                loggable_path(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


def install_access_log_filter(logger_name: str = ACCESS_LOGGER) -> None:
    """Attach a single TokenPathFilter to the server access logger."""
    access_logger = logging.getLogger(logger_name)
    if not any(isinstance(f, TokenPathFilter) for f in access_logger.filters):
        access_logger.addFilter(TokenPathFilter())


def setup_logging(debug: bool = False) -> None:
    """Route structlog through stdlib logging on stdout.

    Console rendering with colors in debug mode, one JSON object per line
    otherwise.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )

    renderer: structlog.typing.Processor = (
        structlog.dev.ConsoleRenderer(colors=True) if debug else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            redact_secrets,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for noisy in ("sqlalchemy.engine", "httpx", "httpcore", "resend"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    install_access_log_filter()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None) -> None:
    """Attach the correlation id to every log line of the current request."""
    if request_id:
        bind_contextvars(request_id=request_id)


def bind_user_context(user_id: UUID, tenant_id: UUID | None = None) -> None:
    """Attach the authenticated user, and the tenant when the route is tenant-scoped."""
    bind_contextvars(user_id=str(user_id))
    if tenant_id is not None:
        bind_contextvars(tenant_id=str(tenant_id))


def clear_request_context() -> None:
    clear_contextvars()


def log_email(email: str) -> str:
    """Return the form of an email address that is safe to write to logs.

    Full addresses are only logged when LOG_USER_EMAILS is enabled.
    """
    from src.accessgrant.core.config import get_settings
    from src.accessgrant.core.security.validators import mask_email

    if get_settings().log_user_emails:
        return email
    return mask_email(email)
