from __future__ import annotations

import logging
import os


CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def running_in_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


class ActionsFormatter(logging.Formatter):
    """
    Render log records as GitHub Actions workflow commands.

    - DEBUG -> `::debug::msg` (only shown when step debug logging is enabled)
    - WARNING -> `::warning::msg`, ERROR and above -> `::error::msg`
    - INFO is printed as plain text
    """

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if record.levelno >= logging.ERROR:
            cmd = "error"
        elif record.levelno >= logging.WARNING:
            cmd = "warning"
        elif record.levelno <= logging.DEBUG:
            cmd = "debug"
        else:
            return msg
        # Workflow commands are line-based; escape per the runner's rules
        escaped = msg.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"::{cmd}::{escaped}"


def _make_handler(lvl: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(lvl)
    if running_in_actions():
        handler.setFormatter(ActionsFormatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def build_logger(name: str, lvl: int = logging.DEBUG) -> logging.Logger:
    """
    Create a logger for `name` that prints workflow commands under Actions
    and a timestamped console format otherwise.

    The root logger is configured once at INFO so third-party noise
    (botocore, httpx) stays filtered.
    """
    root = logging.getLogger()
    if not root.handlers:
        root.addHandler(_make_handler(logging.DEBUG))
        root.setLevel(logging.INFO)

    log = logging.getLogger(name)
    log.setLevel(lvl)
    log.propagate = False
    log.handlers.clear()
    log.addHandler(_make_handler(lvl))
    return log
