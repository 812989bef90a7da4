#  -*- coding: utf-8 -*-
"""
Binary codec writing the record tree into an in-memory HDF5 file.

Layout
------
The tree is stored under the name ``root`` of a fresh HDF5 file and the
file image is returned as ``bytes``.

- Scalars become attributes of the enclosing group. None is written as the
  string ``"NoneType:None"`` and paths as ``"Path:<path>"``; strings that
  would read back as one of those markers get a ``"str:"`` prefix.
- Lists and dicts become subgroups tagged with a ``__container_type__``
  attribute (``"list"`` or ``"dict"``). List items are named ``"0"``,
  ``"1"``... Dict keys that clash with the tag or start with ``"str:"`` are
  prefixed with ``"str:"``.
- Dataset values (arrays, timestamps) become HDF5 datasets tagged with
  ``__dataset_type__`` plus the attributes returned by ``disassemble``.

Dict keys are HDF5 names, so they cannot contain ``"/"``.
"""

from __future__ import annotations

import io

import h5py
import numpy

from numbers import Number
from pathlib import Path

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any

from ..exceptions import CodecError
from ..serialization import Serializable, get_full_qualified_name
from .base import BinaryCodec, rehydrate


ROOT_NAME = 'root'
CONTAINER_ATTR = '__container_type__'
DATASET_ATTR = '__dataset_type__'

NONE_MARKER = 'NoneType:None'
PATH_PREFIX = 'Path:'
STR_PREFIX = 'str:'


def _escape_text(text: str) -> str:

    if text == NONE_MARKER or text.startswith((PATH_PREFIX, STR_PREFIX)):
        return f'{STR_PREFIX}{text}'

    return text


def _escape_key(key: Any) -> str:
    key = str(key)

    if key == CONTAINER_ATTR or key.startswith(STR_PREFIX):
        return f'{STR_PREFIX}{key}'

    return key


def _unescape_key(key: str) -> str:
    return key.removeprefix(STR_PREFIX)


class HDF5BinaryCodec(BinaryCodec):
    """
    HDF5 codec.

    Array-like fields registered as dataset types are written as real HDF5
    datasets, so numeric state stays compact and keeps its dtype.

    Examples
    --------
    >>> storage = FileStorage(HDF5BinaryCodec())
    >>> storage.save('run.bin', Measurement(samples=numpy.zeros((3, 2))))  # doctest: +SKIP
    True
    """

    # ========== ========== ========== ========== ========== writing
    @classmethod
    def _write(cls, group: h5py.Group, name: str, value: Any) -> None:

        if isinstance(value, (list, dict)):
            cls._write_container(group, name, value)

        elif Serializable.is_dataset_type(type(value)):
            cls._write_dataset(group, name, value)

        else:
            group.attrs[name] = cls._encode_scalar(value)

    @classmethod
    def _write_container(cls, group: h5py.Group, name: str, value: list | dict) -> None:

        container = group.create_group(name, track_order=True)

        if isinstance(value, list):
            container.attrs[CONTAINER_ATTR] = 'list'
            items = ((str(index), item) for index, item in enumerate(value))
        else:
            container.attrs[CONTAINER_ATTR] = 'dict'
            items = ((_escape_key(key), item) for key, item in value.items())

        for item_name, item in items:
            cls._write(container, item_name, item)

    @staticmethod
    def _write_dataset(group: h5py.Group, name: str, value: Any) -> None:

        array, attrs = Serializable.dataset_process(type(value))['disassemble'](value)
        array = numpy.asarray(array)

        # resizable along the first axis; 0-d datasets cannot be
        maxshape = (None, *array.shape[1:]) if array.ndim > 0 else None
        dataset = group.create_dataset(name, data=array, maxshape=maxshape)

        dataset.attrs[DATASET_ATTR] = get_full_qualified_name(type(value))

        for attr_name, attr_value in attrs.items():

            if attr_value is None:
                attr_value = NONE_MARKER
            elif isinstance(attr_value, str):
                attr_value = _escape_text(attr_value)

            dataset.attrs[attr_name] = attr_value

    @staticmethod
    def _encode_scalar(value: Any) -> Any:

        if value is None:
            return NONE_MARKER

        if isinstance(value, Path):
            return f'{PATH_PREFIX}{value}'

        if isinstance(value, str):
            return _escape_text(value)

        if isinstance(value, Number):
            return value

        raise TypeError(f"{type(value).__name__} values cannot be written to HDF5")

    # ========== ========== ========== ========== ========== reading
    @classmethod
    def _read(cls, node: Any) -> Any:

        if isinstance(node, h5py.Group):
            return cls._read_container(node)

        if isinstance(node, h5py.Dataset):
            return cls._read_dataset(node)

        return cls._decode_scalar(node)

    @classmethod
    def _read_container(cls, group: h5py.Group) -> list | dict:

        kind = group.attrs.get(CONTAINER_ATTR)

        items = {name: cls._read(child) for name, child in group.items()}
        items.update((name, cls._decode_scalar(value))
                     for name, value in group.attrs.items() if name != CONTAINER_ATTR)

        if isinstance(kind, bytes):
            kind = kind.decode('utf-8')

        if kind == 'list':
            return [items[name] for name in sorted(items, key=int)]

        if kind == 'dict':
            return {_unescape_key(name): item for name, item in items.items()}

        raise ValueError(f"Group {group.name} has no valid {CONTAINER_ATTR} ({kind!r})")

    @classmethod
    def _read_dataset(cls, dataset: h5py.Dataset) -> Any:

        attrs = {name: cls._decode_scalar(value) for name, value in dataset.attrs.items()}
        dataset_type = attrs.pop(DATASET_ATTR)

        return Serializable.dataset_process(dataset_type)['assemble'](dataset[...], attrs)

    @staticmethod
    def _decode_scalar(value: Any) -> Any:

        if isinstance(value, bytes):
            value = value.decode('utf-8')

        if isinstance(value, numpy.generic):
            return value.item()

        if not isinstance(value, str):
            return value

        if value == NONE_MARKER:
            return None

        if value.startswith(STR_PREFIX):
            return value.removeprefix(STR_PREFIX)

        if value.startswith(PATH_PREFIX):
            return Path(value.removeprefix(PATH_PREFIX))

        return value

    # ========== ========== ========== ========== ========== public methods
    def serialize(self, value: Any) -> bytes:
        buffer = io.BytesIO()

        with h5py.File(buffer, 'w') as file:
            self._write(file, ROOT_NAME, Serializable.serialize(value))

        return buffer.getvalue()

    def deserialize(self, data: bytes, target_type: type) -> Any:

        try:
            with h5py.File(io.BytesIO(data), 'r') as file:
                node = file[ROOT_NAME] if ROOT_NAME in file else file.attrs[ROOT_NAME]
                tree = self._read(node)

        except (OSError, KeyError, ValueError) as error:
            raise CodecError(f"Malformed HDF5 content: {error}") from error

        return rehydrate(tree, target_type)
