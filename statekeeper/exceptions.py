#  -*- coding: utf-8 -*-
"""
Exceptions raised by statekeeper.
"""

from __future__ import annotations


class StatekeeperError(Exception):
    """Base exception for statekeeper."""


class CodecError(StatekeeperError, ValueError):
    """Raised when a codec cannot decode content into the requested type."""


class DetachedStateError(StatekeeperError, TypeError):
    """
    Raised when a PersistableState without a codec is asked to save or load.

    Constructing a state without a codec is allowed (the instance is plain
    in-memory data), but such an instance has no storage to talk to.
    """

    def __init__(self, cls: type) -> None:
        super().__init__(
            f'{cls.__name__} was constructed without a codec, so it cannot save '
            f'or load its state. Pass a TextCodec or a BinaryCodec when creating it.'
        )
