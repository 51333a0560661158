from __future__ import annotations

import logging

import structlog


def setup_logging(level: str = "INFO") -> None:
    """
    Настройка structlog поверх стандартного logging: JSON в stdout,
    уровень и ISO-время в каждой записи.
    """
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=lvl)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
