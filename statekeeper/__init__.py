#  -*- coding: utf-8 -*-
"""
statekeeper: file-backed state for plain Python objects.

statekeeper saves the declared properties of an object to a single file and
restores them later, through a swappable text or binary codec. It is meant
for settings, small caches and session snapshots that do not deserve a
database.

Key Features
------------
- **Declared surface**: ``SerializableProperty`` descriptors say exactly what
  is persisted; everything else on the object stays in memory
- **Swappable codecs**: JSON, YAML and HDF5 out of the box, or any
  ``TextCodec`` / ``BinaryCodec`` of your own
- **Merge on load**: properties missing from the file keep their values
- **Safe by default**: one process-wide lock around every file operation,
  failures logged and reported as ``False`` / ``None``

Modules
-------
serialization
    SerializableProperty, Serializable and the snapshot helper
codecs
    TextCodec, BinaryCodec and the reference codecs
storage
    FileStorage, the whole-file save/load engine
state
    PersistableState, objects that save and load themselves
logs
    Logger capability, NullLogger, StandardLogger and get_logger

Examples
--------
>>> from statekeeper import PersistableState, SerializableProperty, JsonTextCodec
>>>
>>> class Session(PersistableState):
...     user = SerializableProperty(default='')
...     visits = SerializableProperty(default=0)
>>>
>>> session = Session(JsonTextCodec())
>>> session.load_state()
False
>>> session.user = 'ada'
>>> session.save_state()
True
"""


from .exceptions import StatekeeperError, CodecError, DetachedStateError
from .serialization import Serializable, SerializableProperty, serializable_property, snapshot
from .codecs import TextCodec, BinaryCodec, JsonTextCodec, YamlTextCodec, HDF5BinaryCodec
from .logs import Logger, NullLogger, StandardLogger, get_logger
from .storage import FileStorage
from .state import PersistableState, StateStatus, derive_file_name


__all__ = [
    "Serializable",
    "SerializableProperty",
    "serializable_property",
    "snapshot",
    "TextCodec",
    "BinaryCodec",
    "JsonTextCodec",
    "YamlTextCodec",
    "HDF5BinaryCodec",
    "Logger",
    "NullLogger",
    "StandardLogger",
    "get_logger",
    "FileStorage",
    "PersistableState",
    "StateStatus",
    "derive_file_name",
    "StatekeeperError",
    "CodecError",
    "DetachedStateError",
]


try:
    # this will run if statekeeper is installed
    from importlib.metadata import metadata, PackageNotFoundError

    meta = metadata('statekeeper')

    __author__ = meta.get('Author') or meta.get('Author-email')
    __license__ = meta.get('License')
    __version__ = meta['Version']

except PackageNotFoundError:
    # this will run during development
    import toml
    from pathlib import Path

    pyproject_filepath = Path(__file__).parent.parent / "pyproject.toml"

    with pyproject_filepath.open() as file:
        pyproject = toml.load(file)

    __version__ = pyproject["project"]["version"]
    __author__ = pyproject["project"]["authors"][0]["name"]
    __license__ = pyproject["project"]["license"]["text"]
