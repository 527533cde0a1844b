from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are too chatty at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "python_multipart")


def configure_logging(debug: bool = False) -> None:
    """Configures the root logger once; later calls only move the levels."""
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()

    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)

    # SQL echo only when debugging.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if debug and name == "sqlalchemy.engine" else logging.WARNING)
    logging.getLogger("marketplace").setLevel(level)
