import logging
import time

from colorama import Fore, Style, init

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_COLORS = {
    logging.DEBUG: Fore.WHITE,
    logging.INFO: Fore.BLUE,
    SUCCESS: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED,
}


class SeverityFormatter(logging.Formatter):
    """Renders `[HH:MM:SS]-[level] : message`, colored by severity."""

    def __init__(self, color=True):
        super().__init__()
        self.color = color

    def format(self, record):
        stamp = time.strftime("%H:%M:%S", time.localtime(record.created))
        line = f"[{stamp}]-[{record.levelname.lower()}] : {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        if not self.color:
            return line
        return f"{_COLORS.get(record.levelno, '')}{line}{Style.RESET_ALL}"


def success(logger, msg, *args):
    logger.log(SUCCESS, msg, *args)


def setup_logging(verbose=False, color=True):
    init()
    handler = logging.StreamHandler()
    handler.setFormatter(SeverityFormatter(color=color))
    root = logging.getLogger("autotx")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    return root
