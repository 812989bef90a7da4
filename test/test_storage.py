#  -*- coding: utf-8 -*-
"""
Test suite for FileStorage.

Tests cover:
- Save/load round trips with text and binary codecs
- Absent and corrupt files
- Usage errors (codec, path, target type)
- Snapshot before text serialization, direct binary serialization
- Logging of outcomes
- The process-wide lock
"""

from __future__ import annotations

import threading
import time

import pytest
from pathlib import Path
from typing import Any

from statekeeper import (
    FileStorage,
    Serializable,
    SerializableProperty,
    JsonTextCodec,
    YamlTextCodec,
    HDF5BinaryCodec,
    TextCodec,
    BinaryCodec,
    Logger,
    NullLogger,
)


# ========== ========== ========== ========== Sample classes
class SomeClass(Serializable):
    name = SerializableProperty(default=None)
    age = SerializableProperty(default=0)


class WithInternals(Serializable):
    init_calls = 0

    value = SerializableProperty(default=0)

    def __init__(self, **kwargs) -> None:
        type(self).init_calls += 1
        self.subscribers = [print]
        super().__init__(**kwargs)


class RecordingLogger(Logger):

    def __init__(self) -> None:
        self.infos: list[str] = []
        self.errors: list[tuple[BaseException, str]] = []

    def info(self, message: str, *args: Any) -> None:
        self.infos.append(message % args)

    def error(self, exception: BaseException, message: str, *args: Any) -> None:
        self.errors.append((exception, message % args))


class IdentityTextCodec(JsonTextCodec):
    """Remembers which object it was asked to serialize."""

    def __init__(self) -> None:
        super().__init__()
        self.received: list[Any] = []

    def serialize(self, value: Any, indented: bool = False) -> str:
        self.received.append(value)
        return super().serialize(value, indented)


class IdentityBinaryCodec(HDF5BinaryCodec):
    """Remembers which object it was asked to serialize."""

    def __init__(self) -> None:
        self.received: list[Any] = []

    def serialize(self, value: Any) -> bytes:
        self.received.append(value)
        return super().serialize(value)


class SlowJsonCodec(JsonTextCodec):
    """Records when each serialization starts and ends."""

    def __init__(self, intervals: list[tuple[float, float]], delay: float = 0.05) -> None:
        super().__init__()
        self.intervals = intervals
        self.delay = delay

    def serialize(self, value: Any, indented: bool = False) -> str:
        start = time.perf_counter()
        time.sleep(self.delay)
        text = super().serialize(value, indented)
        self.intervals.append((start, time.perf_counter()))
        return text


class FailingCodec(TextCodec):

    def serialize(self, value: Any, indented: bool = False) -> str:
        raise RuntimeError("boom")

    def deserialize(self, text: str, target_type: type) -> Any:
        raise RuntimeError("boom")


class BothCodec(TextCodec, BinaryCodec):

    def serialize(self, value, indented=False):
        return ''

    def deserialize(self, text, target_type):
        return None


# ========== ========== ========== ========== Fixtures
@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture(params=[JsonTextCodec, YamlTextCodec, HDF5BinaryCodec],
                ids=['json', 'yaml', 'hdf5'])
def storage(request, logger: RecordingLogger) -> FileStorage:
    return FileStorage(request.param(), logger)


# ========== ========== ========== ========== Save/Load
class TestSaveLoad:
    """Round trips through every reference codec."""

    def test_roundtrip(self, storage: FileStorage, tmp_path: Path) -> None:
        path = tmp_path / 'some_class.dat'
        original = SomeClass(name='John', age=100)

        assert storage.save(path, original)
        assert path.is_file()

        loaded = storage.load(path, SomeClass)

        assert isinstance(loaded, SomeClass)
        assert loaded.name == 'John'
        assert loaded.age == 100

    def test_save_overwrites(self, storage: FileStorage, tmp_path: Path) -> None:
        path = tmp_path / 'some_class.dat'

        storage.save(path, SomeClass(name='first', age=1))
        storage.save(path, SomeClass(name='second', age=2))

        loaded = storage.load_typed(path, SomeClass)
        assert (loaded.name, loaded.age) == ('second', 2)

    def test_string_path_accepted(self, storage: FileStorage, tmp_path: Path) -> None:
        path = str(tmp_path / 'some_class.dat')

        assert storage.save(path, SomeClass(name='John'))
        assert storage.load(path, SomeClass).name == 'John'

    @pytest.mark.parametrize('value', [
        {'a': 1, 'b': [1.5, 'x', None]},
        [1, 2, 3],
        'plain text',
    ], ids=['dict', 'list', 'str'])
    def test_builtin_roundtrip(self, storage: FileStorage, tmp_path: Path, value: Any) -> None:
        path = tmp_path / 'builtin.dat'

        assert storage.save(path, value)
        assert storage.load(path, type(value)) == value

    def test_literal_scenario(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Save to Temp/SomeClassFile.json, load it back, then miss a file
        monkeypatch.chdir(tmp_path)
        Path('Temp').mkdir()

        file_path = Path('Temp') / 'SomeClassFile.json'
        storage = FileStorage(JsonTextCodec())
        some_class = SomeClass(name='John', age=100)

        assert not file_path.exists()
        assert storage.save(file_path, some_class)
        assert file_path.exists()

        loaded = storage.load_typed(file_path, SomeClass)

        assert loaded.name == 'John'
        assert loaded.age == 100
        assert storage.load_typed('nonCorrectFile', SomeClass) is None

    def test_text_file_is_indented_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / 'person.json'

        FileStorage(JsonTextCodec()).save(path, SomeClass(name='Zoë'))

        text = path.read_text(encoding='utf-8')
        assert '\n  "name": "Zoë"' in text


# ========== ========== ========== ========== Failures
class TestOperationalFailures:
    """Operational errors are logged and reported, never raised."""

    def test_load_absent_file_returns_none(self, storage: FileStorage,
                                           logger: RecordingLogger, tmp_path: Path) -> None:
        assert storage.load(tmp_path / 'missing', SomeClass) is None
        assert len(logger.errors) == 1
        assert isinstance(logger.errors[0][0], FileNotFoundError)

    def test_load_typed_zero_values(self, storage: FileStorage, tmp_path: Path) -> None:
        missing = tmp_path / 'missing'

        assert storage.load_typed(missing, SomeClass) is None
        assert storage.load_typed(missing, int) == 0
        assert storage.load_typed(missing, str) == ''
        assert storage.load_typed(missing, list) == []
        assert storage.load_typed(missing, dict) == {}

    def test_load_corrupt_file_returns_none(self, storage: FileStorage, tmp_path: Path) -> None:
        path = tmp_path / 'corrupt'
        path.write_bytes(b'\x00\x01{{{ not a record')

        assert storage.load(path, SomeClass) is None

    def test_load_type_mismatch_returns_none(self, storage: FileStorage, tmp_path: Path) -> None:
        path = tmp_path / 'record'
        storage.save(path, SomeClass(name='John'))

        assert storage.load(path, WithInternals) is None

    def test_save_into_missing_directory_returns_false(self, storage: FileStorage,
                                                       logger: RecordingLogger,
                                                       tmp_path: Path) -> None:
        path = tmp_path / 'no' / 'such' / 'dir' / 'file'

        assert storage.save(path, SomeClass(name='John')) is False
        assert 'Failed to save SomeClass' in logger.errors[0][1]

    def test_save_unserializable_returns_false(self, storage: FileStorage, tmp_path: Path) -> None:
        assert storage.save(tmp_path / 'file', SomeClass(name=object())) is False

    def test_codec_exception_contained(self, tmp_path: Path) -> None:
        storage = FileStorage(FailingCodec())
        path = tmp_path / 'file'
        path.write_text('{}')

        assert storage.save(path, SomeClass()) is False
        assert storage.load(path, SomeClass) is None

    def test_lock_released_after_failure(self, tmp_path: Path) -> None:
        storage = FileStorage(FailingCodec())
        storage.save(tmp_path / 'file', SomeClass())

        assert not storage.lock.locked()


# ========== ========== ========== ========== Usage errors
class TestUsageErrors:
    """Misuse fails immediately."""

    def test_none_codec(self) -> None:
        with pytest.raises(TypeError):
            FileStorage(None)

    def test_not_a_codec(self) -> None:
        with pytest.raises(TypeError):
            FileStorage(object())

    def test_both_codec_variants(self) -> None:
        with pytest.raises(TypeError):
            FileStorage(BothCodec())

    def test_invalid_logger(self) -> None:
        with pytest.raises(TypeError):
            FileStorage(JsonTextCodec(), logger=print)

    @pytest.mark.parametrize('path', [None, '', '   '])
    def test_blank_path_on_save(self, path: Any) -> None:
        with pytest.raises(ValueError):
            FileStorage(JsonTextCodec()).save(path, SomeClass())

    @pytest.mark.parametrize('path', [None, '', '   '])
    def test_blank_path_on_load(self, path: Any) -> None:
        with pytest.raises(ValueError):
            FileStorage(JsonTextCodec()).load(path, SomeClass)

    def test_none_target_type(self) -> None:
        with pytest.raises(TypeError):
            FileStorage(JsonTextCodec()).load('file.json', None)

    def test_default_logger_is_null(self) -> None:
        assert isinstance(FileStorage(JsonTextCodec()).logger, NullLogger)


# ========== ========== ========== ========== Snapshot policy
class TestSnapshotPolicy:
    """Text codecs get a snapshot, binary codecs get the value itself."""

    def test_text_codec_receives_snapshot(self, tmp_path: Path) -> None:
        codec = IdentityTextCodec()
        original = WithInternals(value=5)
        calls = WithInternals.init_calls

        FileStorage(codec).save(tmp_path / 'file.json', original)

        received = codec.received[0]
        assert received is not original
        assert type(received) is WithInternals
        assert received.value == 5
        assert not hasattr(received, 'subscribers')
        assert WithInternals.init_calls == calls

    def test_binary_codec_receives_value(self, tmp_path: Path) -> None:
        codec = IdentityBinaryCodec()
        original = WithInternals(value=5)

        FileStorage(codec).save(tmp_path / 'file.bin', original)

        assert codec.received[0] is original

    def test_internal_state_not_persisted(self, tmp_path: Path) -> None:
        path = tmp_path / 'file.json'

        FileStorage(JsonTextCodec()).save(path, WithInternals(value=5))

        assert 'subscribers' not in path.read_text()


# ========== ========== ========== ========== Logging
class TestLogging:
    """Outcomes reach the logger."""

    def test_success_logged(self, logger: RecordingLogger, tmp_path: Path) -> None:
        storage = FileStorage(JsonTextCodec(), logger)
        path = tmp_path / 'file.json'

        storage.save(path, SomeClass(name='John'))
        storage.load(path, SomeClass)

        assert logger.infos == [
            f'Saved SomeClass to file: {path}',
            f'Loaded SomeClass from file: {path}',
        ]
        assert logger.errors == []

    def test_failure_logged(self, logger: RecordingLogger, tmp_path: Path) -> None:
        storage = FileStorage(JsonTextCodec(), logger)
        path = tmp_path / 'missing.json'

        storage.load(path, SomeClass)

        assert logger.errors[0][1] == f'Failed to load SomeClass from file: {path}'


# ========== ========== ========== ========== Concurrency
class TestProcessWideLock:
    """One lock serializes every storage operation in the process."""

    def test_lock_shared_between_instances(self) -> None:
        first = FileStorage(JsonTextCodec())
        second = FileStorage(HDF5BinaryCodec())

        assert first.lock is second.lock

    def test_saves_on_different_engines_do_not_overlap(self, tmp_path: Path) -> None:
        intervals: list[tuple[float, float]] = []
        results: list[bool] = []

        def run(index: int) -> None:
            storage = FileStorage(SlowJsonCodec(intervals))
            results.append(storage.save(tmp_path / f'file_{index}.json', SomeClass(name=str(index))))

        threads = [threading.Thread(target=run, args=(index,)) for index in range(2)]

        for thread in threads:
            thread.start()

        for thread in threads:
            thread.join()

        assert results == [True, True]
        assert len(intervals) == 2

        first, second = sorted(intervals)
        assert first[1] <= second[0]

    def test_load_waits_for_lock(self, tmp_path: Path) -> None:
        path = tmp_path / 'file.json'
        storage = FileStorage(JsonTextCodec())
        storage.save(path, SomeClass(name='John'))

        loaded: list[Any] = []
        thread = threading.Thread(target=lambda: loaded.append(storage.load(path, SomeClass)))

        with storage.lock:
            thread.start()
            thread.join(timeout=0.1)
            assert thread.is_alive()

        thread.join()
        assert loaded[0].name == 'John'
