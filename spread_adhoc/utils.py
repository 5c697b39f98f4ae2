"""
utils.py: terminal output helpers and logging setup for the command line.
Messages go to stderr, stdout is reserved for the allocation result read by
spread.
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO"):
    """
    setup_logging: configures the root logger to write to stderr
    """
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr)


def _color(code):
    """
    _color: returns color code that can be use inside terminal
    """
    return f"\033[{code}m"

RED = _color("31")
GREEN = _color("32")
BLUE = _color("34")
RESET = _color("0")


def _emit(color, tag, msg):
    print(f"{color}[{tag}] {msg}{RESET}", file=sys.stderr)


def info(msg):
    """
    info: prints message with formatting for INFO
    """
    _emit(BLUE, "INFO", msg)

def success(msg):
    """
    success: prints message with formatting for SUCCEEDED event
    """
    _emit(GREEN, "OK", msg)

def error(msg):
    """
    error: prints message with formatting for FAILED/ERROR event
    """
    _emit(RED, "ERROR", msg)

def fatal(msg):
    """
    fatal: prints message with formatting for unrecoverable failure event
    """
    _emit(RED, "FATAL", msg)
