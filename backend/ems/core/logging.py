# backend/ems/core/logging.py
import logging
import sys

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once.
    - ems.* logs at the configured level
    - motor/pymongo chatter only from WARNING
    """
    root = logging.getLogger()
    if getattr(root, "_ems_configured", False):
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper())

    for noisy in ("pymongo", "motor"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root._ems_configured = True
