#  -*- coding: utf-8 -*-
"""
Conversion between the serialized tree and plain text-friendly data.

JSON and YAML only know ``None``, booleans, numbers, strings, lists and
string-keyed mappings. Values outside that set are tagged:

- ``pathlib.Path`` becomes ``{"__path__": "<path>"}``
- dataset values become::

    {
        "__dataset_type__": "<qualified type name>",
        "dtype": "<numpy dtype>",
        "data": <nested list>,
        "attrs": {...}
    }

NumPy scalars are converted to the matching Python scalar. A user mapping
that would read back as one of those tags (or as the escape itself) is
wrapped as ``{"__mapping__": {...}}``.
"""

from __future__ import annotations

import numpy

from numbers import Number
from pathlib import Path

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any

from ..serialization import Serializable, check_types, get_full_qualified_name


PATH_TAG = '__path__'
DATASET_TAG = '__dataset_type__'
MAPPING_TAG = '__mapping__'


def _looks_tagged(keys: set[str]) -> bool:
    return keys == {PATH_TAG} or keys == {MAPPING_TAG} or DATASET_TAG in keys


def to_plain(tree: Any) -> Any:
    """
    Encode a serialized tree into plain data.

    Raises
    ------
    TypeError
        If a value has no plain representation.
    """
    if tree is None or isinstance(tree, (bool, str)):
        return tree

    if Serializable.is_dataset_type(type(tree)):
        disassemble = Serializable.dataset_process(type(tree))['disassemble']
        array, attrs = disassemble(tree)
        array = numpy.asarray(array)

        return {
            DATASET_TAG: get_full_qualified_name(type(tree)),
            'dtype': str(array.dtype),
            'data': array.tolist(),
            'attrs': to_plain(attrs),
        }

    if isinstance(tree, numpy.generic):
        return tree.item()

    if isinstance(tree, (int, float)):
        return tree

    if isinstance(tree, Path):
        return {PATH_TAG: str(tree)}

    if isinstance(tree, list):
        return [to_plain(item) for item in tree]

    if isinstance(tree, dict):
        mapping = {str(key): to_plain(value) for key, value in tree.items()}

        return {MAPPING_TAG: mapping} if _looks_tagged(set(mapping)) else mapping

    if isinstance(tree, Number):
        raise TypeError(f"Numbers of type {type(tree).__name__} have no plain representation")

    raise TypeError(f"Objects of type {type(tree).__name__} have no plain representation")


def from_plain(data: Any) -> Any:
    """
    Decode plain data back into a serialized tree.

    Raises
    ------
    KeyError
        If a tagged dataset names an unregistered dataset type.
    TypeError
        If an escaped mapping does not hold a mapping.
    """
    if isinstance(data, list):
        return [from_plain(item) for item in data]

    if isinstance(data, dict):

        if set(data) == {MAPPING_TAG}:
            check_types(data[MAPPING_TAG], dict)
            return {key: from_plain(value) for key, value in data[MAPPING_TAG].items()}

        if set(data) == {PATH_TAG}:
            return Path(data[PATH_TAG])

        if DATASET_TAG in data:
            assemble = Serializable.dataset_process(data[DATASET_TAG])['assemble']
            array = numpy.asarray(data['data'], dtype=data.get('dtype'))

            return assemble(array, from_plain(data.get('attrs') or {}))

        return {key: from_plain(value) for key, value in data.items()}

    return data
