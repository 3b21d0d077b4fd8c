import logging

from common.logs import ActionsFormatter, build_logger


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("t", level, __file__, 1, msg, None, None)


def test_actions_formatter_levels():
    fmt = ActionsFormatter("%(message)s")
    assert fmt.format(_record(logging.WARNING, "careful")) == "::warning::careful"
    assert fmt.format(_record(logging.ERROR, "bad")) == "::error::bad"
    assert fmt.format(_record(logging.DEBUG, "detail")) == "::debug::detail"
    assert fmt.format(_record(logging.INFO, "plain")) == "plain"


def test_actions_formatter_escapes_newlines():
    fmt = ActionsFormatter("%(message)s")
    assert fmt.format(_record(logging.WARNING, "a\nb 100%")) == "::warning::a%0Ab 100%25"


def test_build_logger_picks_formatter(monkeypatch):
    monkeypatch.setenv("GITHUB_ACTIONS", "true")
    log = build_logger("test_logs.actions", logging.INFO)
    assert isinstance(log.handlers[0].formatter, ActionsFormatter)
    assert log.propagate is False

    monkeypatch.delenv("GITHUB_ACTIONS")
    log = build_logger("test_logs.console")
    assert len(log.handlers) == 1
    assert not isinstance(log.handlers[0].formatter, ActionsFormatter)
