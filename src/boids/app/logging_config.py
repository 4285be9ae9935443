from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from ..sim.core.config import LoggingConfig

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger from a LoggingConfig.

    Logs go to the console, and also to a rotating file when ``log_file`` is set.
    """
    logger = logging.getLogger()
    logger.setLevel(config.level.upper())
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # 1MB per file, 5 backups
        file_handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=1024 * 1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.getLogger(__name__).debug("Logging configured at %s", config.level.upper())
