#  -*- coding: utf-8 -*-
"""
Codec capability: the two mutually exclusive codec variants.

A ``FileStorage`` is configured with exactly one codec, either a
``TextCodec`` (value <-> ``str``) or a ``BinaryCodec`` (value <-> ``bytes``).
The storage never looks at the produced text or bytes.

Decoding failures (malformed content, a record of the wrong type) must be
raised as ``CodecError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TypeAlias

from ..exceptions import CodecError
from ..serialization import Serializable


# ========== ========== ========== ========== ========== ==========
class TextCodec(ABC):
    """Codec turning values into text and back."""

    @abstractmethod
    def serialize(self, value: Any, indented: bool = False) -> str:
        """Encode ``value``; ``indented`` asks for human-friendly layout."""

    @abstractmethod
    def deserialize(self, text: str, target_type: type) -> Any:
        """Decode ``text`` into an instance of ``target_type``."""


class BinaryCodec(ABC):
    """Codec turning values into bytes and back."""

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Encode ``value``."""

    @abstractmethod
    def deserialize(self, data: bytes, target_type: type) -> Any:
        """Decode ``data`` into an instance of ``target_type``."""


Codec: TypeAlias = TextCodec | BinaryCodec


# ========== ========== ========== ========== ========== helpers
def rehydrate(tree: Any, target_type: type) -> Any:
    """
    Turn a decoded serialized tree into an instance of ``target_type``.

    Serializable targets are rebuilt with ``from_serialized``; any other target
    (``dict``, ``list``, ``str``...) receives the deserialized tree as is,
    provided it has the right type.

    Raises
    ------
    CodecError
        If the tree does not describe a ``target_type`` instance.
    """
    if isinstance(target_type, type) and issubclass(target_type, Serializable):

        if not isinstance(tree, dict):
            raise CodecError(f"Expected a serialized {target_type.__name__}, "
                             f"found {type(tree).__name__}")

        try:
            return target_type.from_serialized(tree)

        except (TypeError, KeyError) as error:
            raise CodecError(f"Cannot decode a {target_type.__name__}: {error}") from error

    try:
        value = Serializable.deserialize(tree)

    except (TypeError, KeyError) as error:
        raise CodecError(f"Cannot decode a {target_type.__name__}: {error}") from error

    if not isinstance(value, target_type):
        raise CodecError(f"Decoded {type(value).__name__} is not a {target_type.__name__}")

    return value
