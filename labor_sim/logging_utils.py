"""Logging setup for scripts and notebooks that drive the simulator.

The library itself only creates module loggers; call `configure_logging`
once from the entry point to see their output.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(log_dir: Optional[Union[str, Path]] = None, debug: bool = False) -> Optional[Path]:
    """Configure root logging to the console and, if `log_dir` is given, `run.log`.

    Returns the log file path when one is written.
    """
    handlers = [logging.StreamHandler()]
    log_file = None
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "run.log"
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )
    return log_file
