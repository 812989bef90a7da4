#  -*- coding: utf-8 -*-
"""
Text codecs: JSON (standard library) and YAML (PyYAML).

Both encode the serialized tree produced by ``Serializable.serialize`` after
passing it through ``statekeeper.codecs.plain``.
"""

from __future__ import annotations

import json

import yaml

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any

from ..exceptions import CodecError
from ..serialization import Serializable
from .base import TextCodec, rehydrate
from .plain import to_plain, from_plain


class JsonTextCodec(TextCodec):
    """
    JSON codec.

    Parameters
    ----------
    sort_keys : bool, default False
        Sort mapping keys in the output. Properties are otherwise written in
        declaration order.

    Examples
    --------
    >>> codec = JsonTextCodec()
    >>> storage = FileStorage(codec)  # doctest: +SKIP
    """

    def __init__(self, sort_keys: bool = False) -> None:
        self.sort_keys: bool = sort_keys

    def serialize(self, value: Any, indented: bool = False) -> str:
        data = to_plain(Serializable.serialize(value))

        return json.dumps(data,
                          indent=2 if indented else None,
                          sort_keys=self.sort_keys,
                          ensure_ascii=False)

    def deserialize(self, text: str, target_type: type) -> Any:

        try:
            data = json.loads(text)
        except json.JSONDecodeError as error:
            raise CodecError(f"Malformed JSON: {error}") from error

        try:
            tree = from_plain(data)
        except (KeyError, TypeError, ValueError) as error:
            raise CodecError(f"Malformed tagged value: {error}") from error

        return rehydrate(tree, target_type)


class YamlTextCodec(TextCodec):
    """
    YAML codec based on ``yaml.safe_dump`` / ``yaml.safe_load``.

    Indented output uses block style; compact output uses flow style.
    """

    def serialize(self, value: Any, indented: bool = False) -> str:
        data = to_plain(Serializable.serialize(value))

        return yaml.safe_dump(data,
                              sort_keys=False,
                              allow_unicode=True,
                              default_flow_style=not indented)

    def deserialize(self, text: str, target_type: type) -> Any:

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as error:
            raise CodecError(f"Malformed YAML: {error}") from error

        try:
            tree = from_plain(data)
        except (KeyError, TypeError, ValueError) as error:
            raise CodecError(f"Malformed tagged value: {error}") from error

        return rehydrate(tree, target_type)
