"""
Logging setup shared by the CLI and the HTTP app.

Services and the store log through module-level loggers
(logging.getLogger(__name__)). The pure domain functions
never log; they raise.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger."""
    root = logging.getLogger("ledger_reconciler")
    root.setLevel(level.upper())

    if not any(getattr(h, "_ledger_reconciler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ledger_reconciler = True
        root.addHandler(handler)
