import logging
import uuid

import structlog

LOG_FORMATS: "tuple[str, ...]" = ("console", "json")


def renderer_for(log_format: "str") -> "structlog.typing.Processor":
    """
    console output for people at a terminal, one JSON object per
    line when the run is scheduled and its output shipped somewhere.
    """
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(level: "str", log_format: "str" = "console") -> "None":
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric_level)
    # httpx logs every request at info, which would repeat page_fetched
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

    processors: "list[structlog.typing.Processor]" = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer_for(log_format))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def bind_run_context(period: "str") -> "str":
    """
    tags every following log line with the billing period and a fresh
    run id, so lines of overlapping scheduled runs can be told apart.
    Returns the run id.
    """
    run_id = uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run_id=run_id, period=period)
    return run_id
