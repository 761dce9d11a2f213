"""
structlog setup for the swap service.

Quote and swap events carry Decimal prices and integer amounts; both are
rendered as plain strings so JSON consumers never see ``Decimal('135.0')``.
"""

import logging
import sys
from decimal import Decimal
from typing import Any, List, MutableMapping, Optional

import structlog

from .config import settings

SERVICE_NAME = "gaia-swap"

# Third-party loggers that drown out provider events at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "hpack")


def _tag_service(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _render_decimals(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def _processors(console: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _tag_service,
        _render_decimals,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if not console:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(log_level: Optional[str] = None) -> None:
    """Configure structlog and route stdlib logging (providers, uvicorn) through it.

    Args:
        log_level: Override log level (default: from settings.log_level).
            DEBUG switches to the colored console renderer, anything else
            emits JSON lines.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    console = level == logging.DEBUG
    shared = _processors(console)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.dev.ConsoleRenderer() if console else structlog.processors.JSONRenderer()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # f-string records from the provider modules get the same enrichment
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
