#  -*- coding: utf-8 -*-
"""
Codec capability and reference codecs.

Modules
-------
base
    ``TextCodec`` and ``BinaryCodec``, the two codec variants
text
    ``JsonTextCodec`` and ``YamlTextCodec``
binary
    ``HDF5BinaryCodec``
plain
    Tagging of paths and dataset values for text formats
"""

from .base import TextCodec, BinaryCodec, Codec
from .text import JsonTextCodec, YamlTextCodec
from .binary import HDF5BinaryCodec


__all__ = [
    'TextCodec',
    'BinaryCodec',
    'Codec',
    'JsonTextCodec',
    'YamlTextCodec',
    'HDF5BinaryCodec',
]
