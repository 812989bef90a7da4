#  -*- coding: utf-8 -*-
"""
Objects that save and load their own declared properties.

``PersistableState`` is a ``Serializable`` that owns a ``FileStorage`` and a
file path. ``load_state`` merges the properties found in the file into the
live instance; ``save_state`` writes the instance's persisted surface.

File naming
-----------
Unless a path is given, the file name is the class name followed by an
extension picked from the codec's class name (case-insensitive substring
match, first hit wins):

=============  ===============  ==========
Codec variant  Keyword          Extension
=============  ===============  ==========
text           ``json``         ``.json``
text           ``xml``          ``.xml``
text           ``soap``         ``.soap``
text           ``yaml``         ``.yml``
text           (none)           ``.txt``
binary         ``binary``       ``.bin``
binary         ``protobuf``     ``.ptb``
binary         ``messagepack``  ``.msp``
binary         (none)           ``.dat``
=============  ===============  ==========

The name is relative to the current working directory.
"""

from __future__ import annotations

import enum

from pathlib import Path

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Callable, TypeAlias

from .codecs.base import TextCodec, BinaryCodec, Codec
from .exceptions import DetachedStateError
from .logs import Logger
from .serialization import Serializable, check_types, restored_keys
from .storage import FileStorage, PathLike


PropertyChangedHandler: TypeAlias = Callable[[Any, str], None]

TEXT_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ('json', '.json'),
    ('xml', '.xml'),
    ('soap', '.soap'),
    ('yaml', '.yml'),
)
TEXT_DEFAULT_EXTENSION: str = '.txt'

BINARY_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ('binary', '.bin'),
    ('protobuf', '.ptb'),
    ('messagepack', '.msp'),
)
BINARY_DEFAULT_EXTENSION: str = '.dat'


def codec_extension(codec: Codec) -> str:
    """
    Return the file extension matching the codec's class name.

    Raises
    ------
    TypeError
        If ``codec`` is neither a TextCodec nor a BinaryCodec.
    """
    check_types(codec, (TextCodec, BinaryCodec))

    codec_name = type(codec).__name__.lower()

    if isinstance(codec, TextCodec):
        table, fallback = TEXT_EXTENSIONS, TEXT_DEFAULT_EXTENSION
    else:
        table, fallback = BINARY_EXTENSIONS, BINARY_DEFAULT_EXTENSION

    for keyword, extension in table:
        if keyword in codec_name:
            return extension

    return fallback


def derive_file_name(cls: type, codec: Codec) -> str:
    """
    Return the default file name for instances of ``cls`` saved with ``codec``.

    Generic parameters in the class name (``Cache[int]``) are dropped. A class
    attribute ``extension`` set to a string takes precedence over the keyword
    tables.
    """
    name = cls.__name__.split('[', 1)[0]
    extension = getattr(cls, 'extension', None)

    # a persisted field called "extension" is not an override
    if not isinstance(extension, str):
        extension = codec_extension(codec)

    return f"{name}{extension}"


class StateStatus(enum.Enum):
    """Outcome of the last ``load_state`` call."""

    UNINITIALIZED = 'uninitialized'
    LOADED = 'loaded'
    LOAD_FAILED = 'load_failed'


# ========== ========== ========== ========== ========== ==========
class PersistableState(Serializable):
    """
    Serializable that persists itself to a single file.

    Subclasses declare their persisted properties with
    ``SerializableProperty`` and may override the ``on_load_complete`` and
    ``on_load_fail`` hooks.

    Parameters
    ----------
    codec : TextCodec or BinaryCodec, optional
        Codec of the owned ``FileStorage``. An instance created without a codec
        is plain data: ``save_state`` and ``load_state`` raise
        ``DetachedStateError`` on it.
    path : str or Path, optional
        Explicit file path. When omitted (or blank) the path is derived from
        the class name and the codec, see ``derive_file_name``.
    logger : Logger, optional
        Passed to the owned ``FileStorage``.
    **values
        Initial values of declared properties.

    Class Attributes
    ----------------
    extension : str or None
        Forces the extension of derived file names. None (default) picks it
        from the codec.

    Examples
    --------
    >>> class Settings(PersistableState):
    ...     theme = SerializableProperty(default='dark')
    ...     font_size = SerializableProperty(default=12)
    >>>
    >>> settings = Settings(JsonTextCodec())
    >>> settings.path
    PosixPath('Settings.json')
    >>> settings.load_state()  # first run, no file yet
    False
    >>> settings.font_size = 14
    >>> settings.save_state()
    True

    Notes
    -----
    Loading merges: only properties present in the file are overwritten,
    through normal attribute assignment, so parsers and observers of the live
    instance run. Nothing calls ``notify_property_changed`` implicitly; wire
    it in a property observer when subscribers must hear about loads.
    """

    # ========== ========== ========== ========== ========== class attributes
    extension: str | None = None

    # instances rebuilt from a record skip __init__ and are detached
    _storage: FileStorage | None = None
    _path: Path | None = None
    _status: StateStatus = StateStatus.UNINITIALIZED

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 codec: Codec | None = None,
                 path: PathLike | None = None,
                 logger: Logger | None = None,
                 **values: Any) -> None:

        if codec is not None:
            self._storage = FileStorage(codec, logger)

            if path is None or (isinstance(path, str) and not path.strip()):
                self._path = Path(derive_file_name(type(self), codec))
            else:
                self._path = Path(path)

        elif path is not None and str(path).strip():
            self._path = Path(path)

        super().__init__(**values)

    def __repr__(self) -> str:
        values = ', '.join(f"{name}={getattr(self, name)!r}" for name in type(self).persisted_properties)
        return f"{type(self).__name__}({values})"

    # ========== ========== ========== ========== ========== protected methods
    def _require_storage(self) -> FileStorage:

        if self._storage is None:
            raise DetachedStateError(type(self))

        return self._storage

    def _merge(self, loaded: Serializable) -> None:

        loaded_properties = type(loaded).persisted_properties
        present = restored_keys(loaded)

        for name in type(self).persisted_properties:

            prop = loaded_properties.get(name)

            if prop is None:
                continue

            # records tell which fields they held, even empty ones
            if present is not None:
                in_file = name in present
            else:
                in_file = prop.is_assigned(loaded)

            if in_file:
                setattr(self, name, prop.__get__(loaded, type(loaded)))

    # ---------- ---------- hooks
    def on_load_complete(self) -> None:
        """Called after ``load_state`` merged the file into this instance."""

    def on_load_fail(self) -> None:
        """Called when ``load_state`` could not read the file."""

    # ========== ========== ========== ========== ========== public methods
    def save_state(self) -> bool:
        """
        Write this instance's persisted properties to ``path``.

        Returns
        -------
        bool
            True if the file was fully written.

        Raises
        ------
        DetachedStateError
            If the instance was created without a codec.
        """
        return self._require_storage().save(self._path, self)

    def load_state(self) -> bool:
        """
        Merge the properties stored in ``path`` into this instance.

        Only properties present both in the file and on this class are
        assigned; every other property keeps its current value. On success
        the status becomes ``LOADED`` and ``on_load_complete`` runs; on
        failure the status becomes ``LOAD_FAILED``, ``on_load_fail`` runs and
        no property changes.

        Returns
        -------
        bool
            True if the file was read and merged.

        Raises
        ------
        DetachedStateError
            If the instance was created without a codec.
        """
        loaded = self._require_storage().load(self._path, type(self))

        if loaded is None:
            self._status = StateStatus.LOAD_FAILED
            self.on_load_fail()
            return False

        self._merge(loaded)

        self._status = StateStatus.LOADED
        self.on_load_complete()
        return True

    # ---------- ---------- change notification
    @property
    def property_changed(self) -> list[PropertyChangedHandler]:
        """list
            Handlers called as ``handler(sender, property_name)``."""
        handlers = vars(self).get('_property_changed')

        if handlers is None:
            handlers = self._property_changed = []

        return handlers

    def subscribe(self, handler: PropertyChangedHandler) -> None:
        """Register ``handler(sender, property_name)``."""
        self.property_changed.append(handler)

    def unsubscribe(self, handler: PropertyChangedHandler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        if handler in self.property_changed:
            self.property_changed.remove(handler)

    def notify_property_changed(self, property_name: str) -> None:
        """Call every subscribed handler, in subscription order."""
        for handler in list(self.property_changed):
            handler(self, property_name)

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def path(self) -> Path | None:
        """Path
            File this instance saves to and loads from."""
        return self._path

    @property
    def storage(self) -> FileStorage | None:
        return self._storage

    @property
    def codec(self) -> Codec | None:
        return self._storage.codec if self._storage is not None else None

    @property
    def status(self) -> StateStatus:
        """StateStatus
            Outcome of the last ``load_state`` call."""
        return self._status


__all__ = [
    'PersistableState',
    'StateStatus',
    'PropertyChangedHandler',
    'derive_file_name',
    'codec_extension',
    'TEXT_EXTENSIONS',
    'BINARY_EXTENSIONS',
]
