import sys
from pathlib import Path

from loguru import logger


def enrich_record(record):
    # Path relative to the working directory, absolute when outside of it
    file_path = Path(record["file"].path)
    try:
        relative_path = file_path.relative_to(Path.cwd())
    except ValueError:
        relative_path = file_path
    record["extra"]["rel_path"] = str(relative_path)
    return True


def configure_logger(verbose: bool = False):
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{extra[rel_path]}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "INFO",
        colorize=True,
        filter=enrich_record,
    )
