import logging
import os
import sys
from datetime import datetime

LOGGER_NAME = "collab_intel"


def setup_logger(log_dir: str = os.path.expanduser("~/.ci/logs"),
                 verbose: bool = False) -> logging.Logger:
    """Creates a file logger. All verbose output goes here."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # One set of handlers per process, even when main() runs repeatedly
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    try:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"agent_{timestamp}.log")

        # File handler: captures everything
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"
        ))
        logger.addHandler(fh)
    except OSError as exc:
        logger.debug("Cannot create log file in %s: %s", log_dir, exc)

    if verbose:
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(logging.DEBUG)
        sh.setFormatter(logging.Formatter("%(levelname)s  %(name)s  %(message)s"))
        logger.addHandler(sh)

    return logger
