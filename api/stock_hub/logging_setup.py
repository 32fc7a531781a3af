# -*- coding: utf-8 -*-
from __future__ import annotations
import logging, logging.handlers
from pathlib import Path

FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")


def _has_file_handler(lg: logging.Logger, log_path: Path) -> bool:
    return any(
        isinstance(h, logging.handlers.RotatingFileHandler) and Path(h.baseFilename) == log_path
        for h in lg.handlers
    )


def setup_logging(settings, name: str = "stock_hub") -> Path:
    """
    Rotating file log per tier at STOCK_DATA_ROOT/logs/<name>.log.

    Safe to call more than once: a handler for the same file is never added twice.
    """
    level = logging.getLevelName(str(settings.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO

    log_dir = Path(settings.STOCK_DATA_ROOT).expanduser() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = (log_dir / f"{name}.log").resolve()

    handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FORMAT))
    handler.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    if not _has_file_handler(root, log_path):
        root.addHandler(handler)
        if settings.LOG_TO_CONSOLE:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter(FORMAT))
            root.addHandler(console)

    # uvicorn's loggers are configured with propagate=False
    for lg_name in SERVER_LOGGERS:
        lg = logging.getLogger(lg_name)
        lg.setLevel(level)
        if not _has_file_handler(lg, log_path):
            lg.addHandler(handler)

    return log_path
