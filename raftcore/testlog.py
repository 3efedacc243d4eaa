"""Loggers that route output through a test harness's own log function."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, Union

_DEFAULT_NAME = "raftcore"
_FORMAT_NAMED = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_FORMAT_PLAIN = "%(asctime)s [%(levelname)s] %(message)s"


class LoggerAdapter:
    """A writable stream that hands each written line to a sink function.

    Used as the output of a logger, it sends log lines to a test's own
    logging call, so they only show up when that test fails.
    """

    def __init__(self, sink: Callable[[str], None], prefix: str = "") -> None:
        self.sink = sink
        self.prefix = prefix

    def write(self, data: Union[str, bytes]) -> int:
        """Pass data, less one trailing newline, to the sink; return its length."""
        text = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else data
        if text.endswith("\n"):
            text = text[:-1]
        if self.prefix:
            text = f"{self.prefix}: {text}"
        self.sink(text)
        return len(text)

    def flush(self) -> None:
        """Nothing is buffered, so there is nothing to flush."""


def new_test_logger(
    sink: Optional[Callable[[str], None]] = None, prefix: str = ""
) -> logging.Logger:
    """Return a logger named prefix.

    With a sink, records at INFO and above go through a LoggerAdapter to it.
    Without one, every record down to DEBUG goes straight to standard error.
    """
    logger = logging.Logger(prefix or _DEFAULT_NAME)
    logger.propagate = False
    fmt = _FORMAT_NAMED if prefix else _FORMAT_PLAIN
    if sink is None:
        handler = logging.StreamHandler(sys.stderr)
        logger.setLevel(logging.DEBUG)
    else:
        handler = logging.StreamHandler(LoggerAdapter(sink, prefix))
        logger.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    return logger