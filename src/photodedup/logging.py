import logging
import os

PACKAGE = "photodedup"
LEVEL_ENV_VAR = "PHOTODEDUP_LOG_LEVEL"


def _resolve_level(level_name: str, default: int) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else default


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    # Worker threads log concurrently; the thread name tells their lines apart
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Default to WARNING for library usage, INFO for CLI
    default_level = logging.INFO if name.endswith('.cli') else logging.WARNING
    env_level = os.getenv(LEVEL_ENV_VAR)
    logger.setLevel(_resolve_level(env_level, default_level) if env_level else default_level)
    return logger


def set_package_level(level_name: str) -> int:
    """
    Set the level of every photodedup logger created so far.

    Raises:
        ValueError: If ``level_name`` is not a logging level
    """
    level = _resolve_level(level_name, -1)
    if level < 0:
        raise ValueError(f"Unknown log level: {level_name}")

    for name in list(logging.root.manager.loggerDict):
        if name == PACKAGE or name.startswith(PACKAGE + "."):
            logging.getLogger(name).setLevel(level)
    return level
