"""JSON-line logging for notion-source reads.

Every read logs ``Notion read started`` with the requested kinds and worker
group count, and ``Notion read finished`` with the read's metrics counters
(``pages_read``, ``errors_encountered``, ``duration_seconds``...). Each
skipped record logs a WARNING carrying ``kind``, ``record_id`` and ``error``.
These ``extra`` fields become top-level JSON keys.

Output goes to stderr. ``httpx`` and ``notion_client`` log one line per request
at INFO/DEBUG and are held at WARNING; ``level`` applies to ``notion_source``.

Usage:
    from notion_source.logging_config import configure_logging
    configure_logging(get_settings().log_level)
"""

import copy
import logging
import logging.config

PACKAGE_LOGGER = "notion_source"

LOGGING_CONFIG: dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            "rename_fields": {
                "levelname": "severity",
                "asctime": "timestamp",
                "name": "logger",
            },
            "static_fields": {
                "service": "notion-source",
            },
        },
    },
    "handlers": {
        "stderr": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        PACKAGE_LOGGER: {"level": "INFO"},
        "httpx": {"level": "WARNING"},
        "notion_client": {"level": "WARNING"},
    },
    "root": {
        "level": "WARNING",
        "handlers": ["stderr"],
    },
}


def configure_logging(level: str | None = None) -> None:
    """Install the JSON handler on the root logger.

    ``level`` (e.g. the ``log_level`` setting) applies to the
    ``notion_source`` loggers only; other libraries stay at WARNING.
    """
    config = copy.deepcopy(LOGGING_CONFIG)
    if level:
        config["loggers"][PACKAGE_LOGGER]["level"] = level.upper()
    logging.config.dictConfig(config)
