from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from fraud_proxy import config


def setup_logger(
    name: str = "fraud_proxy",
    log_file: Optional[str] = config.LOG_PATH,
    level: str = config.LOG_LEVEL,
    max_bytes: int = config.LOG_MAX_BYTES,
    backups: int = config.LOG_BACKUPS,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s %(message)s")

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max(max_bytes, 0),
                backupCount=max(backups, 0),
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
