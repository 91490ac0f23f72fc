"""
Shared logging setup.

Call setup_logging() once at startup (FastAPI lifespan, cron entrypoints).
Modules import `logger` from here or use logging.getLogger("<area>").
"""

import logging
import sys


def setup_logging(level: int = logging.INFO):
    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # uvicorn --reload imports twice
    if not root_logger.handlers:
        root_logger.addHandler(handler)


logger = logging.getLogger("omnilytics")
