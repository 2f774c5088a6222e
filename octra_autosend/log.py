import logging
import os
import sys
from datetime import datetime

c = {
    'r': '\033[0m',
    'b': '\033[34m',
    'c': '\033[36m',
    'g': '\033[32m',
    'y': '\033[33m',
    'R': '\033[31m',
    'B': '\033[1m',
    'w': '\033[37m',
    'm': '\033[35m',
    'gray': '\033[90m',
}

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LEVEL_COLORS = {
    logging.DEBUG: c['m'],
    logging.INFO: c['b'],
    SUCCESS: c['g'],
    logging.WARNING: c['y'],
    logging.ERROR: c['R'],
    logging.CRITICAL: c['R'] + c['B'],
}


class ColorFormatter(logging.Formatter):
    """[timestamp] message, coloured by level."""

    def __init__(self, use_color=True):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        ts = datetime.fromtimestamp(record.created).isoformat(timespec='milliseconds')
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"
        if not self.use_color:
            return f"[{ts}] {msg}"
        color = LEVEL_COLORS.get(record.levelno, c['b'])
        return f"{c['gray']}[{ts}]{c['r']} {color}{msg}{c['r']}"


def success(logger, msg, *args):
    logger.log(SUCCESS, msg, *args)


def setup_logging(level=None, stream=None):
    level = level or os.environ.get("OCTRA_LOG_LEVEL", "INFO")
    stream = stream or sys.stdout
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(use_color=stream.isatty() and not os.environ.get("NO_COLOR")))

    root = logging.getLogger("octra_autosend")
    root.handlers[:] = [handler]
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    return root
