"""
Logging setup for the sideline rotation engine.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)-36s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """Install console (and optional rotating file) handlers on the root logger."""
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Re-running setup must not stack duplicate handlers
    for handler in list(root.handlers):
        if getattr(handler, "_sideline_handler", False):
            root.removeHandler(handler)

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(fmt)
    ch._sideline_handler = True
    root.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        fh.setFormatter(fmt)
        fh._sideline_handler = True
        root.addHandler(fh)

    # Flask's request log is noisy at INFO
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    return root
