"""
Logging Configuration
Sets up the package logger for the solver and the command-line interface.
"""
import logging
import sys
from typing import Optional


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    rank: Optional[int] = None,
) -> None:
    """
    Configures the logger for the 'heatdistance' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        rank: Optional rank of the calling process, prepended to every record.
    """
    logger = logging.getLogger("heatdistance")
    logger.setLevel(level)

    # Check if handlers already exist to avoid duplicate logs on repeated setup
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    # Format: [rank] Time - Module - Level - Message
    prefix = f"[rank {rank}] " if rank is not None else ""
    formatter = logging.Formatter(
        prefix + '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
