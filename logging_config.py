import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter(LOG_FORMAT))


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Reconfiguring (tests build several apps) must not stack handlers.
    if _handler not in root.handlers:
        root.addHandler(_handler)

    # uvicorn's access log duplicates the request middleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
