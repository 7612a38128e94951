import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install one stream handler on the package logger.

    Safe to call repeatedly (create_app runs once per test app).
    """
    root = logging.getLogger("campusmart")
    root.setLevel(level.upper())

    if not any(getattr(h, "_campusmart", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._campusmart = True
        root.addHandler(handler)
