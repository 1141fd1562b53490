from contextlib import contextmanager
import json
import logging
from typing import Any, Iterator

import notifiers.logging

from gatekeeper import config

logger = logging.getLogger("gatekeeper")

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"


def escape_data(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandFormatter(logging.Formatter):
    """
    Renders records as GitHub Actions workflow commands, so that debug output
    is only shown with step debugging enabled and warnings/errors are turned
    into annotations. Info records are printed as-is.
    """

    commands = {
        logging.DEBUG: "debug",
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = self.commands.get(record.levelno)
        if command is None:
            return message
        return f"::{command}::{escape_data(message)}"


def get_log_handlers(logger):
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
    logger.addHandler(handler)
    return [handler]


def configure_logging(actions: bool = config.GITHUB_ACTIONS) -> None:
    handler = logging.StreamHandler()
    if actions:
        # the runner decides whether ::debug:: lines are shown
        handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
        level = logging.DEBUG
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        level = config.OVERRIDE_LOGGING

    logger.handlers = [handler]
    logger.setLevel(level)
    get_log_handlers(logger)


@contextmanager
def group(title: str) -> Iterator[None]:
    logger.info("::group::%s", title)
    try:
        yield
    finally:
        logger.info("::endgroup::")


def log_json(value: Any, name: str) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug("====== BEGIN %s ======", name)
    logger.debug("%s", json.dumps(value, indent=4, default=str))
    logger.debug("======= END %s =======", name)
