from __future__ import annotations
import logging
import os


def _level_from_env(default: int) -> int:
    name = os.environ.get("LOG_LEVEL", "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def setup_console_logging(level: int | None = None) -> None:
    """
    Call once at app start. Prints detailed logs to console.
    LOG_LEVEL overrides the default INFO level when no level is passed.
    """
    if level is None:
        level = _level_from_env(logging.INFO)

    root = logging.getLogger()
    if root.handlers:
        # already configured (avoid duplicates)
        root.setLevel(level)
        return

    root.setLevel(level)
    h = logging.StreamHandler()
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    h.setFormatter(fmt)
    root.addHandler(h)
