"""qvote.logging_cfg - one-liner helper to enable consistent logging settings."""

import logging


def setup_logging(level="INFO") -> None:
    """Configure the root logger once for the node process."""
    level_num = (
        getattr(logging, str(level).upper(), logging.INFO)
        if isinstance(level, str)
        else level
    )

    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    datefmt = "%H:%M:%S"
    logging.basicConfig(level=level_num, format=fmt, datefmt=datefmt)
