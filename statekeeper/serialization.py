#  -*- coding: utf-8 -*-
"""
Persisted fields, the type registry and the record tree.

Every object statekeeper writes to disk describes its persisted fields with
``SerializableProperty``. A ``Serializable`` class knows the fields declared
on itself and on its bases, turns an instance into a *record tree* made of
builtin containers, and builds instances back from such a tree without
running ``__init__``.

Record tree
-----------
``Serializable.serialize`` produces a tree that codecs can encode without
knowing anything about the objects it came from:

- ``None``, registered primitives (``str``, numbers, ``pathlib.Path``)
- lists (tuples and sets become lists) and dicts
- registered dataset values (``numpy.ndarray``, ``pandas.Timestamp``,
  ``pandas.DatetimeIndex``), stored by codecs as an array plus attributes
- one dict per ``Serializable`` instance: its persisted fields plus a
  ``"__class__"`` entry holding the fully qualified class name

Records and present keys
------------------------
``from_serialized`` only assigns the fields found in the record and
remembers which ones they were (``restored_keys``). Loading a state merges
exactly those fields into the live object, including fields stored as
``None``.

Dataset types
-------------
A dataset type is registered with two functions:

- ``disassemble(obj) -> (ndarray, attrs)``
- ``assemble(ndarray, attrs) -> obj``
"""

from __future__ import annotations

import numpy
import pandas

from abc import ABCMeta
from numbers import Number
from pathlib import Path

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import TypeVar, Callable, Any, TypeAlias, Self, Type

from numpy.typing import NDArray


T = TypeVar('T')
"""Type of the field value"""

Getter: TypeAlias = Callable[[object], T]
Setter: TypeAlias = Callable[[object, Any], None]
Deleter: TypeAlias = Callable[[object], None]
Observer: TypeAlias = Callable[[object, T, T], None]
Parser: TypeAlias = Callable[[object, Any], T]

CLASS_KEY = '__class__'
RESTORED_KEYS_ATTR = '_restored_keys'


class SerializableProperty:
    """
    Descriptor declaring one persisted field of a state object.

    Works like ``property`` with three additions: a default used while the
    field holds nothing, a parser that normalises assigned values, and an
    observer told about every assignment.

    Parameters
    ----------
    fget, fset, fdel : callable, optional
        Accessors, as for ``property``. Missing ``fget``/``fset`` are
        generated and store the value on the instance under
        ``_state__<name>``.
    default : object or callable, optional
        Value reported while nothing (or None) is stored. A callable is
        called with the instance.
    parser : callable, optional
        ``parser(instance, raw) -> value``, applied to every assignment,
        including values read back from a file.
    observer : callable, optional
        ``observer(instance, old, new)``, called after a normal assignment.
        Rehydration and snapshots never call it.
    readonly : bool, default False
        Computed field without a setter. Read-only fields are never written
        to files.
    doc : str, optional
        Docstring; defaults to the getter's.

    Notes
    -----
    None stands for "empty": assigning None stores the default, and reading
    an empty field returns the default without storing it.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 fget: Getter | None = None,
                 fset: Setter | None = None,
                 fdel: Deleter | None = None,
                 *,
                 default: T | Getter | None = None,
                 parser: Parser | None = None,
                 observer: Observer | None = None,
                 readonly: bool = False,
                 doc: str | None = None) -> None:

        self.fget: Getter | None = fget
        self.fset: Setter | None = None if readonly else fset
        self.fdel: Deleter | None = fdel

        self._default: T | Getter | None = default
        self._parser: Parser | None = parser
        self._observer: Observer | None = observer
        self._readonly: bool = readonly

        if doc is None and fget is not None:
            doc = fget.__doc__

        self.__doc__: str | None = doc

    def __set_name__(self, owner: type, name: str) -> None:

        self.name: str = name
        self.owner: type = owner
        self.private_name: str = f"_state__{name}"

        if self.fget is None:
            self.fget = lambda obj: getattr(obj, self.private_name)

        if self.fset is None and not self._readonly:
            self.fset = lambda obj, value: setattr(obj, self.private_name, value)

    def __get__(self, instance: object | None, owner: type) -> T | Self:

        if instance is None:
            return self

        value = self._stored(instance)

        return self._resolve_default(instance) if value is None else value

    def __set__(self, instance: object, value: Any) -> None:
        """
        Store ``value``: empty values take the default, the parser runs, the
        value is written and finally the observer sees ``(old, new)``.
        """
        setter = self._require_setter()

        new_value = self._prepare(instance, value)
        old_value = self.__get__(instance, type(instance))

        setter(instance, new_value)

        if self._observer is not None:
            self._observer(instance, old_value, new_value)

    def __delete__(self, instance: object) -> None:

        if self.fdel is None:
            raise AttributeError(f"field '{self.name}' cannot be deleted")

        self.fdel(instance)

    # ========== ========== ========== ========== ========== protected methods
    def _stored(self, instance: object) -> Any:

        if self.fget is None:
            raise AttributeError(f"field '{self.name}' is not readable")

        try:
            return self.fget(instance)
        except AttributeError:
            return None

    def _require_setter(self) -> Setter:

        if self.fset is None:
            raise AttributeError(f"field '{self.name}' is read-only")

        return self.fset

    def _resolve_default(self, instance: object) -> Any:
        return self._default(instance) if callable(self._default) else self._default

    def _prepare(self, instance: object, value: Any) -> Any:

        if value is None:
            value = self._resolve_default(instance)

        if self._parser is None:
            return value

        return self._parser(instance, value)

    def _derive(self, **changes: Any) -> Self:
        """Copy of this descriptor with some constructor arguments replaced."""
        arguments = dict(fget=self.fget, fset=self.fset, fdel=self.fdel,
                         default=self._default, parser=self._parser,
                         observer=self._observer, readonly=self._readonly,
                         doc=self.__doc__)
        arguments.update(changes)

        return type(self)(**arguments)

    # ---------- ---------- decorator-style rebinding
    def getter(self, fget: Getter) -> Self:
        return self._derive(fget=fget)

    def setter(self, fset: Setter) -> Self:
        return self._derive(fset=fset)

    def deleter(self, fdel: Deleter) -> Self:
        return self._derive(fdel=fdel)

    def default(self, func: Getter) -> Self:
        """Use ``func(instance)`` as the default."""
        return self._derive(default=func)

    def parser(self, func: Parser) -> Self:
        """Use ``func(instance, raw)`` to normalise assigned values."""
        return self._derive(parser=func)

    def observer(self, func: Observer) -> Self:
        """Call ``func(instance, old, new)`` after every assignment."""
        return self._derive(observer=func)

    # ========== ========== ========== ========== ========== public methods
    def is_assigned(self, instance: object) -> bool:
        """Return True if ``instance`` stores a non-empty value for this field."""
        return self._stored(instance) is not None

    def restore(self, instance: object, value: Any) -> None:
        """
        Store a value read from a record.

        The parser runs, the observer does not: the instance being restored
        has not been initialised and nobody is listening to it yet.
        """
        self._require_setter()(instance, self._prepare(instance, value))

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def persisted(self) -> bool:
        """bool
            True if the field is written to and read from files."""
        return self.fget is not None and self.fset is not None


def serializable_property(default: T | Getter | None = None,
                          readonly: bool = False) -> Callable[[Getter], SerializableProperty]:
    """
    Build a ``SerializableProperty`` from a decorated getter.

    Examples
    --------
    >>> class Window(Serializable):
    ...     width = SerializableProperty(default=800)
    ...     height = SerializableProperty(default=600)
    ...
    ...     @serializable_property(readonly=True)
    ...     def area(self):
    ...         return self.width * self.height
    """
    def decorator(getter: Getter) -> SerializableProperty:
        return SerializableProperty(getter, default=default, readonly=readonly)

    return decorator


# ========== ========== ========== ========== ========== ==========
def get_full_qualified_name(cls: type) -> str:
    """Return ``"<module>.<qualname>"``, or the bare qualname for builtins."""
    module = cls.__module__

    if module in (None, 'builtins'):
        return cls.__qualname__

    return f"{module}.{cls.__qualname__}"


def check_types(obj: Any,
                types: type | tuple[type, ...],
                can_be_none: bool = False,
                raise_error: bool = True) -> bool:
    """
    Check that ``obj`` is an instance of ``types``.

    Parameters
    ----------
    obj : object
        Value to check.
    types : type or tuple of type
        Accepted types.
    can_be_none : bool, default False
        Also accept None.
    raise_error : bool, default True
        Raise TypeError instead of returning False.

    Returns
    -------
    bool

    Examples
    --------
    >>> check_types(None, int, can_be_none=True)
    True
    >>> check_types("x", int, raise_error=False)
    False
    """
    accepted = types if isinstance(types, tuple) else (types,)

    if can_be_none:
        accepted = (*accepted, type(None))

    if isinstance(obj, accepted):
        return True

    if raise_error:
        names = ', '.join(get_full_qualified_name(cls) for cls in accepted)
        raise TypeError(f"Expected an instance of {names}, "
                        f"got {get_full_qualified_name(type(obj))}")

    return False


def _collect_properties(cls: type) -> dict[str, SerializableProperty]:
    # bases first, so subclasses can redeclare a field in place
    collected: dict[str, SerializableProperty] = {}

    for base in reversed(cls.__mro__):
        for name, attr in vars(base).items():
            if isinstance(attr, SerializableProperty):
                collected[name] = attr

    return collected


class SerializableMetatype(ABCMeta):
    """
    Metaclass of ``Serializable``.

    Registers every subclass under its fully qualified name, so records can
    name their class, and collects the ``SerializableProperty`` fields of the
    class and its bases. The registries of primitive and dataset types live
    on the root ``Serializable`` class and are shared by every codec.
    """

    # ========== ========== ========== ========== ========== special methods
    def __new__(mcs,
                name: str,
                bases: tuple[type, ...],
                namespace: dict[str, Any],
                **kwargs: Any) -> Type[Serializable]:

        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        if not any(isinstance(base, SerializableMetatype) for base in bases):
            # root class: owns the registries
            cls._subclasses = {}
            cls._primitive_types = set()
            cls._dataset_types = {}

        else:
            Serializable._subclasses[get_full_qualified_name(cls)] = cls

        cls._serializable_properties = _collect_properties(cls)

        return cls

    def __getitem__(cls, qualname: str) -> Type[Serializable]:
        """
        ``Serializable[name]`` looks a registered class up by qualified name.

        On subclasses that are also ``typing.Generic`` the subscription is
        forwarded to ``__class_getitem__``.
        """
        if cls is Serializable:
            return Serializable._subclasses[qualname]

        if hasattr(cls, '__class_getitem__'):
            return cls.__class_getitem__(qualname)

        raise KeyError(f'Class {cls.__name__} is not subscriptable')

    def __contains__(cls, item: str | type) -> bool:
        """
        ``item in Cls``: True if ``item`` (a class or its qualified name) is a
        registered subclass of ``Cls``.
        """
        if isinstance(item, str):
            item = Serializable._subclasses.get(item)

            if item is None:
                return False

        if not isinstance(item, type):
            raise TypeError('Expected a class or a fully qualified class name')

        return item in Serializable._subclasses.values() and issubclass(item, cls)

    # ========== ========== ========== ========== ========== public methods
    def register_primitive_type(cls, primitive_type: type) -> None:
        """
        Let values of ``primitive_type`` pass through the record tree as is.

        Raises
        ------
        TypeError
            For containers and Serializable classes, which have their own
            encoding.
        """
        if issubclass(primitive_type, (list, dict, tuple, Serializable)):
            raise TypeError(f'{primitive_type.__name__} cannot be a primitive type')

        Serializable._primitive_types.add(primitive_type)

    def remove_primitive_type(cls, primitive_type: type) -> None:
        Serializable._primitive_types.discard(primitive_type)

    def register_dataset_type(cls,
                              dataset_type: type,
                              disassemble: Callable[[Any], tuple[NDArray, dict]],
                              assemble: Callable[[NDArray, dict], Any]) -> None:
        """
        Register a type that codecs store as an array plus attributes.

        Parameters
        ----------
        dataset_type : type
            Type to register. It also becomes a primitive type.
        disassemble : callable
            ``disassemble(obj) -> (array, attrs)``.
        assemble : callable
            ``assemble(array, attrs) -> obj``.

        Notes
        -----
        The pair is reachable from the type and from its qualified name, which
        is what codecs write next to the array.
        """
        functions = {'disassemble': disassemble, 'assemble': assemble}

        Serializable._dataset_types[dataset_type] = functions
        Serializable._dataset_types[get_full_qualified_name(dataset_type)] = functions
        Serializable.register_primitive_type(dataset_type)

    def remove_dataset_type(cls, dataset_type: type) -> None:
        Serializable.remove_primitive_type(dataset_type)
        Serializable._dataset_types.pop(dataset_type, None)
        Serializable._dataset_types.pop(get_full_qualified_name(dataset_type), None)

    def is_dataset_type(cls, type_: type) -> bool:
        return type_ in Serializable._dataset_types

    def dataset_process(cls, key: type | str) -> dict[str, Callable]:
        """
        Return ``{'disassemble': ..., 'assemble': ...}`` for a dataset type
        given as a type or a qualified name.

        Raises
        ------
        KeyError
            If nothing is registered under ``key``.
        """
        return Serializable._dataset_types[key]

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def serializable_properties(cls) -> dict[str, SerializableProperty]:
        """dict[str, SerializableProperty]
            Every declared field, inherited ones first."""
        return dict(cls._serializable_properties)

    @property
    def persisted_properties(cls) -> dict[str, SerializableProperty]:
        """dict[str, SerializableProperty]
            The fields written to files: declared fields that are both
            readable and writable."""
        return {name: prop for name, prop in cls._serializable_properties.items() if prop.persisted}


class Serializable(metaclass=SerializableMetatype):
    """
    Base class of objects whose persisted fields can be turned into a record.

    ``Serializable(**values)`` assigns persisted fields by keyword; a keyword
    naming no persisted field raises ValueError. Two instances are equal when
    they have the same type and every persisted field compares equal
    (``numpy.all`` makes array fields compare element-wise); comparing
    different types raises TypeError.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, **values: Any) -> None:
        self._assign_values(values)

    def __eq__(self, other):

        if type(other) is not type(self):
            raise TypeError(f"Cannot compare {type(self).__name__} with {type(other).__name__}")

        return all(numpy.all(getattr(self, name) == getattr(other, name))
                   for name in type(self).persisted_properties)

    # ========== ========== ========== ========== ========== protected methods
    def _assign_values(self, values: dict[str, Any]) -> None:

        check_types(values, dict)

        fields = type(self).persisted_properties
        unknown = [name for name in values if name not in fields]

        if unknown:
            raise ValueError(f"{type(self).__name__} has no persisted fields named {unknown}")

        for name in fields:
            if name in values:
                setattr(self, name, values[name])

    # ========== ========== ========== ========== ========== public methods
    @classmethod
    def from_serialized(cls, record: dict[str, Any]) -> Self:
        """
        Build an instance from a record without calling ``__init__``.

        Only the fields present in ``record`` are restored; keys naming no
        persisted field are ignored. The restored names are kept and can be
        read with ``restored_keys``.

        Raises
        ------
        TypeError
            If ``record`` is not a dict, or if its ``"__class__"`` is not
            ``cls`` or a subclass of it.
        KeyError
            If its ``"__class__"`` names no registered class.
        """
        check_types(record, dict)

        target = cls

        if CLASS_KEY in record:
            class_name = record[CLASS_KEY]

            if class_name not in Serializable:
                raise KeyError(f"Unknown class {class_name}")

            target = Serializable[class_name]

            if not issubclass(target, cls):
                raise TypeError(f"Record of {target.__name__} cannot become a {cls.__name__}")

        obj = target.__new__(target)
        fields = target.persisted_properties
        restored = []

        for name, value in record.items():

            if name in fields:
                fields[name].restore(obj, Serializable.deserialize(value))
                restored.append(name)

        setattr(obj, RESTORED_KEYS_ATTR, frozenset(restored))

        return obj

    @staticmethod
    def serialize(obj: Any) -> Any:
        """
        Turn ``obj`` into a record tree.

        Raises
        ------
        TypeError
            If ``obj`` (or something inside it) has no record form.
        """
        if obj is None:
            return None

        if isinstance(obj, (tuple, list, set)):
            return [Serializable.serialize(item) for item in obj]

        if isinstance(obj, dict):
            return {key: Serializable.serialize(value) for key, value in obj.items()}

        if isinstance(obj, Serializable):
            record = {CLASS_KEY: get_full_qualified_name(type(obj))}

            for name in type(obj).persisted_properties:
                record[name] = Serializable.serialize(getattr(obj, name))

            return record

        if isinstance(obj, tuple(Serializable._primitive_types)):
            return obj

        raise TypeError(f"{type(obj).__name__} values cannot be serialized")

    @staticmethod
    def deserialize(tree: Any) -> Any:
        """
        Turn a record tree back into objects.

        Dicts holding a ``"__class__"`` entry become instances of that class.

        Raises
        ------
        TypeError
            If the tree contains an unsupported value.
        KeyError
            If a ``"__class__"`` names no registered class.
        """
        if tree is None:
            return None

        if isinstance(tree, (tuple, list, set)):
            return [Serializable.deserialize(item) for item in tree]

        if isinstance(tree, dict):

            if CLASS_KEY in tree:
                return Serializable[tree[CLASS_KEY]].from_serialized(tree)

            return {key: Serializable.deserialize(value) for key, value in tree.items()}

        if isinstance(tree, (*Serializable._primitive_types, Serializable)):
            return tree

        raise TypeError(f"{type(tree).__name__} values cannot be deserialized")


def restored_keys(value: Serializable) -> frozenset[str] | None:
    """
    Names of the fields ``from_serialized`` found in the record of ``value``.

    None if ``value`` was not built from a record.
    """
    return vars(value).get(RESTORED_KEYS_ATTR)


def snapshot(value: Serializable) -> Serializable:
    """
    Copy the persisted fields of ``value`` into a bare instance of its type.

    The copy is made with ``__new__``, so ``__init__`` does not run, and the
    fields are written through their raw setters, so parsers and observers do
    not run either. Whatever else ``value`` holds (subscribers, caches,
    open handles) stays behind.

    Raises
    ------
    TypeError
        If ``value`` is not a Serializable.
    """
    check_types(value, Serializable)

    cls = type(value)
    copy = cls.__new__(cls)

    for prop in cls.persisted_properties.values():
        prop.fset(copy, prop.__get__(value, cls))

    return copy


for _primitive in (str, Number, Path):
    Serializable.register_primitive_type(_primitive)


# ========== ========== ========== numpy arrays
def disassemble_ndarray(arr: NDArray) -> tuple[NDArray, dict[str, Any]]:
    return arr, {}


def assemble_ndarray(arr: NDArray, attrs: dict[str, Any]) -> NDArray:
    return numpy.asarray(arr)


Serializable.register_dataset_type(numpy.ndarray, disassemble_ndarray, assemble_ndarray)


# ========== ========== ========== pandas timestamps
def disassemble_pandas_time(time: pandas.DatetimeIndex | pandas.Timestamp) -> tuple[NDArray, dict[str, Any]]:
    """Nanoseconds since the epoch, in local wall time, plus the timezone name."""
    time = time.as_unit('ns')
    timezone = None if time.tz is None else str(time.tz)

    if timezone is not None:
        time = time.tz_localize(None)

    return numpy.asarray(time.to_numpy().astype(numpy.int64)), {'timezone': timezone}


def assemble_pandas_time(array: NDArray, attrs: dict[str, Any]) -> pandas.DatetimeIndex | pandas.Timestamp:
    array = numpy.asarray(array, dtype=numpy.int64)

    if array.ndim == 0:
        time = pandas.Timestamp(int(array))
    else:
        time = pandas.DatetimeIndex(array.astype('datetime64[ns]'))

    timezone = attrs.get('timezone')

    return time if timezone is None else time.tz_localize(timezone)


Serializable.register_dataset_type(pandas.Timestamp, disassemble_pandas_time, assemble_pandas_time)
Serializable.register_dataset_type(pandas.DatetimeIndex, disassemble_pandas_time, assemble_pandas_time)


__all__ = [
    'SerializableProperty',
    'serializable_property',
    'SerializableMetatype',
    'Serializable',
    'check_types',
    'get_full_qualified_name',
    'restored_keys',
    'snapshot',
]
