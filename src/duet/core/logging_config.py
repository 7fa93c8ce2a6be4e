"""Process-wide logging configuration."""

from logging.config import dictConfig

from duet.core.settings import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
JSON_LOG_FORMAT = (
    '{"time":"%(asctime)s","level":"%(levelname)s",'
    '"logger":"%(name)s","message":"%(message)s"}'
)


def setup_logging(config: Settings) -> None:
    """Install console logging for the application and its libraries."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": LOG_FORMAT},
                "json": {"format": JSON_LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": config.log_format,
                },
            },
            "loggers": {
                "duet": {"level": config.log_level.upper()},
                # SQL echo is driven by the engine flag, keep the logger quiet otherwise.
                "sqlalchemy.engine": {"level": "INFO" if config.sql_debug else "WARNING"},
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }
    )
