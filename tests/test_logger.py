import logging

import pytest

from gatekeeper import logger as logger_module
from gatekeeper.logger import (
    WorkflowCommandFormatter,
    configure_logging,
    escape_data,
    get_log_handlers,
    group,
    log_json,
    logger,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("gatekeeper", level, __file__, 1, msg, None, None)


def test_escape_data():
    assert escape_data("50% done\r\nnext") == "50%25 done%0D%0Anext"


@pytest.mark.parametrize(
    "level,expected",
    [
        (logging.DEBUG, "::debug::hello"),
        (logging.INFO, "hello"),
        (logging.WARNING, "::warning::hello"),
        (logging.ERROR, "::error::hello"),
    ],
)
def test_workflow_command_formatter(level, expected):
    formatter = WorkflowCommandFormatter("%(message)s")
    assert formatter.format(_record(level, "hello")) == expected


def test_workflow_command_formatter_escapes_multiline():
    formatter = WorkflowCommandFormatter("%(message)s")
    assert formatter.format(_record(logging.WARNING, "a\nb")) == "::warning::a%0Ab"


def test_group_closes_on_error(caplog):
    caplog.set_level(logging.INFO, logger="gatekeeper")

    with pytest.raises(RuntimeError):
        with group("Getting checks..."):
            logger.info("inside")
            raise RuntimeError("boom")

    messages = [r.getMessage() for r in caplog.records]
    assert messages == ["::group::Getting checks...", "inside", "::endgroup::"]


def test_log_json_only_at_debug(caplog):
    caplog.set_level(logging.INFO, logger="gatekeeper")
    log_json({"a": 1}, "value")
    assert caplog.records == []

    caplog.set_level(logging.DEBUG, logger="gatekeeper")
    log_json({"a": 1}, "value")
    messages = [r.getMessage() for r in caplog.records]
    assert messages[0] == "====== BEGIN value ======"
    assert '"a": 1' in messages[1]
    assert messages[2] == "======= END value ======="


def test_configure_logging_in_actions(monkeypatch):
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger_module.config, "TELEGRAM_TOKEN", None)
    level = logger.level
    try:
        configure_logging(actions=True)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, WorkflowCommandFormatter)
        assert logger.level == logging.DEBUG
    finally:
        logger.setLevel(level)


def test_notification_handler_only_with_token(monkeypatch):
    target = logging.getLogger("gatekeeper.notify")

    monkeypatch.setattr(logger_module.config, "TELEGRAM_TOKEN", None)
    assert get_log_handlers(target) == []

    monkeypatch.setattr(logger_module.config, "TELEGRAM_TOKEN", "token")
    monkeypatch.setattr(logger_module.config, "TELEGRAM_CHAT_ID", "42")
    handlers = get_log_handlers(target)
    try:
        assert len(handlers) == 1
        assert handlers[0].level == logging.WARNING
        assert handlers[0] in target.handlers
    finally:
        target.removeHandler(handlers[0])
