import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(name)s:%(lineno)d | %(levelname)s - %(message)s"


def setup_logger(
    name: str = "stormimpact",
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    append: bool = True,
) -> logging.Logger:
    """
    Set up the package logger with a console handler and an optional file handler

    Args:
        name: Logger name; child modules log through `logging.getLogger(__name__)`
        level: Console log level
        log_file: If given, DEBUG and above are also written to this file
        append: If True, append to an existing log file. If False, overwrite it.
    """
    logger = logging.getLogger(name)

    # Prevent adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a" if append else "w")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
