#  -*- coding: utf-8 -*-
"""
Whole-file save and load through a single configured codec.

``FileStorage`` writes one value per file and reads it back whole. Every
``save`` and ``load`` in the process, across all ``FileStorage`` instances,
runs under one shared lock, so persistence calls never interleave even when
they target different files with different codecs.

Errors
------
Misuse (no codec, blank path, missing target type) raises immediately.
Operational failures (missing file, permission denied, malformed content,
type mismatch) never propagate: they are reported to the logger and turned
into ``False`` (save) or ``None`` (load).
"""

from __future__ import annotations

import threading

from pathlib import Path

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TypeVar

from .codecs.base import TextCodec, BinaryCodec, Codec
from .exceptions import CodecError
from .logs import Logger, NullLogger
from .serialization import Serializable, check_types, snapshot


T = TypeVar('T')

PathLike = str | Path

ZERO_VALUE_TYPES: tuple[type, ...] = (bool, int, float, complex, str, bytes, list, tuple, dict, set)
"""Types whose zero value is ``target_type()`` in ``FileStorage.load_typed``"""


def _resolve_path(path: PathLike | None) -> Path:

    if path is None or (isinstance(path, str) and not path.strip()):
        raise ValueError("File path cannot be None or empty.")

    check_types(path, (str, Path))

    return Path(path)


# ========== ========== ========== ========== ========== ==========
class FileStorage:
    """
    Serialize values to files and back with exactly one codec.

    Parameters
    ----------
    codec : TextCodec or BinaryCodec
        The codec used for every save and load of this storage.
    logger : Logger, optional
        Sink for success and failure events. Defaults to ``NullLogger``.

    Raises
    ------
    TypeError
        If ``codec`` is None, is neither a ``TextCodec`` nor a
        ``BinaryCodec``, or is both.

    Notes
    -----
    With a text codec, ``save`` serializes a snapshot of a Serializable value
    (see ``statekeeper.serialization.snapshot``) rather than the value itself,
    so only the declared persisted properties reach the codec. Builtin values
    (dicts, lists, strings...) and everything handed to a binary codec go to
    the codec as they are.

    Examples
    --------
    >>> storage = FileStorage(JsonTextCodec())
    >>> storage.save('person.json', Person(name='John', age=100))
    True
    >>> storage.load_typed('person.json', Person).name
    'John'
    """

    # ========== ========== ========== ========== ========== class attributes
    _locker: threading.Lock = threading.Lock()

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, codec: Codec, logger: Logger | None = None) -> None:

        if codec is None:
            raise TypeError("Codec cannot be None.")

        check_types(codec, (TextCodec, BinaryCodec))

        if isinstance(codec, TextCodec) and isinstance(codec, BinaryCodec):
            raise TypeError(f"{type(codec).__name__} cannot be both a TextCodec and a BinaryCodec.")

        check_types(logger, Logger, can_be_none=True)

        self._codec: Codec = codec
        self._logger: Logger = logger if logger is not None else NullLogger()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({type(self._codec).__name__})"

    # ========== ========== ========== ========== ========== public methods
    def save(self, path: PathLike, value: Any) -> bool:
        """
        Serialize ``value`` and overwrite ``path`` with the result.

        Parameters
        ----------
        path : str or Path
            Destination file.
        value : Serializable or builtin value
            Value to persist.

        Returns
        -------
        bool
            True if the file was fully written.

        Raises
        ------
        ValueError
            If ``path`` is None or blank.
        """
        path = _resolve_path(path)
        type_name = type(value).__name__

        with self._locker:
            try:
                if self.is_text:
                    if isinstance(value, Serializable):
                        value = snapshot(value)

                    text = self._codec.serialize(value, True)
                    path.write_text(text, encoding='utf-8')

                else:
                    data = self._codec.serialize(value)
                    path.write_bytes(data)

            except Exception as error:
                self._logger.error(error, "Failed to save %s to file: %s", type_name, path)
                return False

            self._logger.info("Saved %s to file: %s", type_name, path)
            return True

    def load(self, path: PathLike, target_type: type[T]) -> T | None:
        """
        Read ``path`` whole and decode it into ``target_type``.

        Parameters
        ----------
        path : str or Path
            Source file.
        target_type : type
            Type the record must decode into.

        Returns
        -------
        object or None
            The decoded value, or None if anything went wrong (the reason is
            logged).

        Raises
        ------
        TypeError
            If ``target_type`` is None or not a class.
        ValueError
            If ``path`` is None or blank.
        """
        if target_type is None:
            raise TypeError("Target type cannot be None.")

        check_types(target_type, type)

        path = _resolve_path(path)
        type_name = target_type.__name__

        with self._locker:
            try:
                if self.is_text:
                    value = self._codec.deserialize(path.read_text(encoding='utf-8'), target_type)
                else:
                    value = self._codec.deserialize(path.read_bytes(), target_type)

                if not isinstance(value, target_type):
                    raise CodecError(f"Decoded {type(value).__name__} is not a {type_name}")

            except Exception as error:
                self._logger.error(error, "Failed to load %s from file: %s", type_name, path)
                return None

            self._logger.info("Loaded %s from file: %s", type_name, path)
            return value

    def load_typed(self, path: PathLike, target_type: type[T]) -> T | None:
        """
        Like ``load``, but return the zero value of ``target_type`` on failure.

        The zero value is ``target_type()`` for the builtin value types
        (``int`` gives 0, ``list`` gives ``[]``...) and None for any other
        class.
        """
        value = self.load(path, target_type)

        if value is not None:
            return value

        if target_type in ZERO_VALUE_TYPES:
            return target_type()

        return None

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def codec(self) -> Codec:
        """TextCodec or BinaryCodec
            The codec fixed at construction."""
        return self._codec

    @property
    def logger(self) -> Logger:
        return self._logger

    @property
    def is_text(self) -> bool:
        """bool
            True if the codec is a TextCodec."""
        return isinstance(self._codec, TextCodec)

    @property
    def lock(self) -> threading.Lock:
        """threading.Lock
            The lock shared by every FileStorage in the process."""
        return FileStorage._locker


__all__ = [
    'FileStorage',
]
