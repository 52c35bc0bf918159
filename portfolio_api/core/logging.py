import logging
import sys
from pathlib import Path

import structlog

from portfolio_api.core.config import settings
from portfolio_api.core.sanitizer import redact_pii


class PIIRedactingFormatter(structlog.stdlib.ProcessorFormatter):
    """ProcessorFormatter that redacts PII from stdlib log records first."""

    def format(self, record: logging.LogRecord) -> str:
        # structlog records carry an event dict; _redact_structlog handles those
        if not isinstance(record.msg, str):
            return super().format(record)
        record.msg = redact_pii(record.msg)
        if record.args:
            record.args = tuple(
                redact_pii(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return super().format(record)


def _redact_structlog(_, __, event_dict):
    for key, value in list(event_dict.items()):
        if isinstance(value, str):
            event_dict[key] = redact_pii(value)
    return event_dict


def _build_renderer():
    if settings.LOG_FORMAT == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def setup_logging(log_dir: Path | None = None):
    """Configure logging for the application with PII redaction."""
    log_dir = log_dir or Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = getattr(logging, settings.LOG_LEVEL, logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_structlog,
    ]

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    formatter = PIIRedactingFormatter(
        processor=_build_renderer(),
        foreign_pre_chain=shared_processors,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_dir / "portfolio_api.log")
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_configured",
        level=settings.LOG_LEVEL,
        format=settings.LOG_FORMAT,
        pii_redaction=True,
    )

    return logger
