from __future__ import annotations

import logging

logger = logging.getLogger("carelink_client")
logger.addHandler(logging.NullHandler())

_FORMAT = "%(asctime)s %(name)s %(message)s"


def set_verbose() -> None:
    """Emit diagnostics to stderr. Safe to call more than once."""
    if not any(getattr(h, "_carelink_verbose", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._carelink_verbose = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def log(source: str, msg: str) -> None:
    logger.info(f"[{source}] {msg}")
