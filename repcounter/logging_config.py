import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Attach one stream handler to the root logger unless it already has handlers."""
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = (level or os.getenv("REPCOUNTER_LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stream_handler)
