import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.handlers.clear()
    root.addHandler(handler)

    # urllib3 logs every phyphox poll at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
