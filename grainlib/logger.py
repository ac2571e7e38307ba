"""
Logging for grainlib and the analyze_grains CLI.

Library modules log at DEBUG only (grain counts, feature batches); the CLI
reports per-file progress at INFO, a final SUCCESS line, and skipped files
at WARNING/ERROR. Output goes to stdout as one line per record with a
level marker instead of a timestamp:

    [*] snare: 2 channel(s), 44100 samples @ 44100 Hz (1.00s)
    [✓] Analysed 10 grain(s) from 1 source(s)

The starting level comes from GRAINLIB_LOG_LEVEL (INFO when unset). The
CLI's --log-level flag overrides it for the whole process through
configure_root_logger, which also re-levels grainlib loggers created at
import time.
"""

import logging
import os
import sys
from typing import Optional


# Sits between INFO (20) and WARNING (30) so --log-level WARNING hides it
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

ENV_VAR = "GRAINLIB_LOG_LEVEL"


class GrainFormatter(logging.Formatter):
    """
    One-line formatter: level marker, optional module tag, message.

    The module tag ("[segmenter]") is shown only at DEBUG, where messages
    from several grainlib modules interleave.
    """

    PREFIX_MAP = {
        "DEBUG": "[·]",
        "INFO": "[*]",
        "SUCCESS": "[✓]",
        "WARNING": "[!]",
        "ERROR": "[✗]",
        "CRITICAL": "[✗✗]",
    }

    def __init__(self, include_module: bool = False):
        super().__init__()
        self.include_module = include_module

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.PREFIX_MAP.get(record.levelname, "[?]")
        if not self.include_module:
            return f"{prefix} {record.getMessage()}"

        module = record.name
        if module.startswith("grainlib."):
            module = module[len("grainlib."):]
        elif module == "__main__":
            module = "main"
        return f"{prefix} [{module}] {record.getMessage()}"


def _level_from_env() -> int:
    level_name = os.environ.get(ENV_VAR, "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a grainlib module or script, writing to stdout.

    The handler is attached on first use only, so modules can call this at
    import time and tests can call it repeatedly. Records do not propagate
    to the root logger.

    Example:
        >>> logger = get_logger("grainlib.segmenter")
        >>> logger.info("Segmenting snare.wav")
        [*] Segmenting snare.wav
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = _level_from_env()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(GrainFormatter(include_module=level == logging.DEBUG))
    logger.addHandler(handler)
    logger.propagate = False
    set_level(logger, logging.getLevelName(level))
    return logger


def log_success(logger: logging.Logger, message: str) -> None:
    """Log at the SUCCESS level ([✓] marker)."""
    logger.log(SUCCESS, message)


def set_level(logger: logging.Logger, level: str) -> None:
    """
    Move a configured logger and its handlers to a new level.

    Switching to DEBUG also turns on the module tag.

    Raises:
        ValueError: If level is not a logging level name
    """
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    logger.setLevel(numeric)
    for handler in logger.handlers:
        handler.setLevel(numeric)
        if isinstance(handler.formatter, GrainFormatter):
            handler.formatter.include_module = numeric == logging.DEBUG


def configure_root_logger(level: Optional[str] = None) -> None:
    """
    Apply a process-wide level, as analyze_grains does for --log-level.

    The level is written to GRAINLIB_LOG_LEVEL so loggers created later pick
    it up, and every grainlib logger that already has a handler is moved to
    it. Handlers on the root logger are removed.

    Args:
        level: Level name; None keeps the current GRAINLIB_LOG_LEVEL
    """
    if level:
        os.environ[ENV_VAR] = level.upper()

    logging.getLogger().handlers.clear()

    level_name = logging.getLevelName(_level_from_env())
    for name, existing in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(existing, logging.Logger) or not existing.handlers:
            continue
        if name == "grainlib" or name.startswith("grainlib."):
            set_level(existing, level_name)

    get_logger("grainlib")

