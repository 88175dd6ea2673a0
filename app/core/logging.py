# app/core/logging.py
import logging
import sys

import structlog

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# applied to records coming from plain stdlib loggers
_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def build_formatter(json: bool = False) -> logging.Formatter:
    """
    json=True: one JSON object per line
    (event, level, logger, timestamp, exception when present).
    """
    if not json:
        return logging.Formatter(PLAIN_FORMAT)
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
    )


def setup_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Minimal unified logging:
    - root logger level
    - a single stdout handler (no duplicated output)
    - optional one-line JSON records
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(json))
    root.addHandler(handler)

    # noisy third parties
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )
