import logging
from typing import List

import notifiers.logging

from reconciler import config

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"


def get_log_handlers(logger: logging.Logger) -> List[logging.Handler]:
    """Attach the optional Telegram notification handler for warnings and errors."""
    if config.TELEGRAM_TOKEN is None:
        return []
    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": config.TELEGRAM_TOKEN,
            "chat_id": config.TELEGRAM_CHAT_ID,
        },
    )
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return [handler]


def setup_logging(level=None) -> logging.Logger:
    if level is None:
        level = config.OVERRIDE_LOGGING
    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)
    logging.getLogger().setLevel(level)
    logger = logging.getLogger("reconciler")
    logger.setLevel(level)
    if not any(
        isinstance(h, notifiers.logging.NotificationHandler) for h in logger.handlers
    ):
        get_log_handlers(logger)
    return logger
