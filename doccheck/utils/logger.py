import sys, logging
from loguru import logger

CONSOLE_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[check]}</cyan> - <level>{message}</level>"

_console_sink_id = None

def set_level(level: str = "INFO"):
    """(Re)install the console handler at the given level."""
    global _console_sink_id
    if _console_sink_id is not None:
        logger.remove(_console_sink_id)
    _console_sink_id = logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)

# Records logged without a bound check still render in the console format
logger.remove()
logger.configure(extra={"check": "doccheck"})
set_level("INFO")

# Redirect standard library logging to Loguru
class PropagateHandler(logging.Handler):
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

def setup_library_interception():
    # urllib3 logs every connection at DEBUG; keep it behind WARNING
    for name in ["urllib3", "requests"]:
        l = logging.getLogger(name)
        l.handlers = [PropagateHandler()]
        l.setLevel(logging.WARNING)
        l.propagate = False

setup_library_interception()
