import logging
import sys

STATS_LOGGER_NAME = "storetest.stats"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(message)s"

stats_logger = logging.getLogger(STATS_LOGGER_NAME)


def configure_logging(level="INFO", log_file=None):
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    return stats_logger
