import logging
import sys
from reloop.utils.config import config

# Client libraries behind the idea generators, image providers and the store.
# Their request-level chatter is only useful when debugging reloop itself.
CLIENT_LOGGERS = ("httpx", "openai", "google_genai", "urllib3", "pymongo")

# Anything outside reloop only reaches stdout at ERROR
logging.basicConfig(level=logging.ERROR, format=config.log_format, stream=sys.stdout)


def configure_reloop_logger(level: str = config.log_level, log_format: str = config.log_format) -> logging.Logger:
    """Give the ``reloop`` logger exactly one stdout handler at ``level``."""
    reloop_logger = logging.getLogger('reloop')
    reloop_logger.setLevel(level)

    # Re-running must not stack handlers
    for handler in list(reloop_logger.handlers):
        reloop_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format))
    reloop_logger.addHandler(handler)
    reloop_logger.propagate = False

    client_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)
    return reloop_logger


configure_reloop_logger()

# Every module logs through this child of the reloop logger
logger = logging.getLogger(__name__)
