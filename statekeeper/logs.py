#  -*- coding: utf-8 -*-
"""
Logging capability used by the file storage.

The storage only needs two calls, ``info`` and ``error``, so the capability is
a small abstract class. Three implementations are provided:

- ``NullLogger``: discards every event; used when no logger is given.
- ``StandardLogger``: forwards to a ``logging.Logger``.
- ``get_logger``: builds a ``StandardLogger`` whose records are rendered by
  Rich.

statekeeper never configures the root logger.
"""

from __future__ import annotations

import logging

from abc import ABC, abstractmethod

from rich.logging import RichHandler

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any


# ========== ========== ========== ========== ========== ==========
class Logger(ABC):
    """
    Sink for persistence events.

    Messages use ``%``-style interpolation, exactly like the standard library:
    ``logger.info("Saved %s to file: %s", name, path)``.
    """

    @abstractmethod
    def info(self, message: str, *args: Any) -> None:
        """Record an informational event."""

    @abstractmethod
    def error(self, exception: BaseException | None, message: str, *args: Any) -> None:
        """Record a failure together with the exception that caused it."""


class NullLogger(Logger):
    """
    No-op logger implementation.

    Useful when logging is disabled but the code expects a logger object.
    """

    def info(self, message, *args) -> None:
        return

    def error(self, exception, message, *args) -> None:
        return


class StandardLogger(Logger):
    """
    Adapter forwarding events to a standard library logger.

    Parameters
    ----------
    logger : logging.Logger or str, optional
        The logger to forward to, or a logger name. Defaults to the
        ``statekeeper`` logger.

    Notes
    -----
    ``error`` passes the exception as ``exc_info`` so handlers render the
    traceback.
    """

    def __init__(self, logger: logging.Logger | str | None = None) -> None:

        if logger is None or isinstance(logger, str):
            logger = logging.getLogger(logger or 'statekeeper')

        self._logger: logging.Logger = logger

    def info(self, message: str, *args: Any) -> None:
        self._logger.info(message, *args)

    def error(self, exception: BaseException | None, message: str, *args: Any) -> None:
        self._logger.error(message, *args, exc_info=exception)

    @property
    def logger(self) -> logging.Logger:
        """logging.Logger
            The wrapped standard library logger."""
        return self._logger


def get_logger(name: str = 'statekeeper',
               level: int = logging.INFO,
               rich: bool = True) -> StandardLogger:
    """
    Return a ready-to-use logger for a FileStorage or PersistableState.

    Parameters
    ----------
    name : str, default 'statekeeper'
        Name of the standard library logger.
    level : int, default logging.INFO
        Level set on that logger.
    rich : bool, default True
        If True, records are rendered by ``rich.logging.RichHandler``;
        otherwise a plain ``logging.StreamHandler`` is used.

    Notes
    -----
    The handler is attached once per logger name, so calling this function
    repeatedly does not duplicate output.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not any(getattr(handler, '_statekeeper', False) for handler in logger.handlers):

        if rich:
            handler = RichHandler(rich_tracebacks=True, show_path=False)
        else:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))

        handler._statekeeper = True
        logger.addHandler(handler)

    return StandardLogger(logger)


__all__ = [
    'Logger',
    'NullLogger',
    'StandardLogger',
    'get_logger',
]
