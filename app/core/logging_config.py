# app/core/logging_config.py
"""
Process-wide logging setup, called once from the app lifespan.

Service modules log through `logging.getLogger(__name__)`, so everything the
fulfillment workflow writes lives under the "app" logger tree.
"""

import logging
import os

# Driver and transport loggers that are chatty at INFO
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "asyncpg",
    "aiosqlite",
    "alembic.runtime.migration",
    "uvicorn.access",
    "websockets",
    "httpx",
)


def configure_logging(level: str = None):
    """
    Configure the root handler and per-logger levels.

    `level` wins over the LOG_LEVEL environment variable; unknown names fall
    back to INFO.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Claims, stock movements and socket pushes all log under app.*
    logging.getLogger("app").setLevel(numeric_level)

    logging.getLogger(__name__).info(f"Logging configured at level: {log_level}")
