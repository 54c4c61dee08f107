"""Logging for the compiler pipeline.

Each stage (builder, validator, emitter, differ, ...) logs through a child of
the ``vpc_compiler`` logger. Records are tagged with their stage so console
output can be narrowed to the stages being debugged.
"""

import logging
import sys
from typing import Iterable, Optional

logger = logging.getLogger("vpc_compiler")

CONSOLE_FORMAT = "[%(levelname)s] %(stage)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(stage)s: %(message)s"


def stage_of(record: logging.LogRecord) -> str:
    """Stage name of a record: 'builder' for 'vpc_compiler.builder'."""
    prefix = logger.name + "."
    if record.name.startswith(prefix):
        return record.name[len(prefix) :]
    return "compiler" if record.name == logger.name else record.name


class StageFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.stage = stage_of(record)
        return super().format(record)


class StageFilter(logging.Filter):
    """Pass only records from the given stages."""

    def __init__(self, stages: Iterable[str]):
        super().__init__()
        self.stages = frozenset(stages)

    def filter(self, record: logging.LogRecord) -> bool:
        return stage_of(record) in self.stages


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    stages: Optional[Iterable[str]] = None,
) -> logging.Logger:
    """Configure compiler logging.

    Args:
        debug: Show debug records on stderr
        log_file: Optional file receiving every record at debug level
        stages: Limit stderr output to these stages (file output is unfiltered)

    Returns:
        The package logger
    """
    logger.setLevel(logging.DEBUG if debug or log_file else logging.INFO)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(StageFormatter(CONSOLE_FORMAT))
    if stages:
        console.addFilter(StageFilter(stages))
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StageFormatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def get_logger(stage: str) -> logging.Logger:
    """Child logger for a compiler stage, e.g. get_logger('emitter')."""
    return logger.getChild(stage)
