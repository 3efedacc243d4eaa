import enum
import io
from dataclasses import dataclass

import pytest

from raftcore.mockfsm import (
    MockFSM,
    MockFSMConfigStore,
    MockMonotonicLogStore,
    MockSnapshot,
    WrappingFSM,
    get_mock_fsm,
)


class LogType(enum.Enum):
    COMMAND = 0
    NOOP = 1


@dataclass
class Entry:
    index: int
    data: bytes
    type: object = 0


class Sink:
    def __init__(self, fail=False):
        self.buf = io.BytesIO()
        self.fail = fail
        self.closed = False
        self.cancelled = False

    def write(self, data):
        if self.fail:
            raise OSError("disk full")
        self.buf.write(data)
        return len(data)

    def close(self):
        self.closed = True

    def cancel(self):
        self.cancelled = True


class Source(io.BytesIO):
    def __init__(self, data):
        super().__init__(data)
        self.was_closed = False

    def close(self):
        self.was_closed = True
        super().close()


class DictStore:
    def __init__(self):
        self.entries = {}

    def first_index(self):
        return min(self.entries, default=0)

    def last_index(self):
        return max(self.entries, default=0)

    def get_log(self, index):
        return self.entries[index]

    def store_log(self, log):
        self.entries[log.index] = log

    def store_logs(self, logs):
        for log in logs:
            self.store_log(log)

    def delete_range(self, min_index, max_index):
        for i in range(min_index, max_index + 1):
            self.entries.pop(i, None)


class Wrapper(WrappingFSM):
    def __init__(self, inner):
        self.inner = inner

    def underlying(self):
        return self.inner


def test_apply_returns_running_count():
    fsm = MockFSM()
    assert fsm.apply(Entry(1, b"a")) == 1
    assert fsm.apply(Entry(2, b"b")) == 2
    assert fsm.logs() == [b"a", b"b"]


def test_apply_batch_skips_non_commands():
    fsm = MockFSM()
    result = fsm.apply_batch(
        [Entry(1, b"x", LogType.COMMAND), Entry(2, b"n", LogType.NOOP), Entry(3, b"y", 0)]
    )
    assert result == [1, None, 2]
    assert fsm.logs() == [b"x", b"y"]


def test_persist_wire_bytes():
    sink = Sink()
    MockSnapshot([b"a"]).persist(sink)
    assert sink.buf.getvalue() == b"\x91\xa1a"
    assert sink.closed and not sink.cancelled


def test_snapshot_restore_round_trip():
    fsm = MockFSM()
    for i, data in enumerate([b"one", b"two", b"three"], start=1):
        fsm.apply(Entry(i, data))
    sink = Sink()
    fsm.snapshot().persist(sink)

    other = MockFSM()
    other.apply(Entry(1, b"stale"))
    source = Source(sink.buf.getvalue())
    other.restore(source)
    assert other.logs() == fsm.logs()
    assert source.was_closed


def test_snapshot_is_unaffected_by_later_applies():
    fsm = MockFSM()
    fsm.apply(Entry(1, b"a"))
    snap = fsm.snapshot()
    fsm.apply(Entry(2, b"b"))
    assert snap.logs == [b"a"]
    assert snap.max_index == 1


def test_restore_empty_snapshot():
    sink = Sink()
    MockFSM().snapshot().persist(sink)
    fsm = MockFSM()
    fsm.apply(Entry(1, b"a"))
    fsm.restore(Source(sink.buf.getvalue()))
    assert fsm.logs() == []


def test_persist_failure_cancels_sink():
    sink = Sink(fail=True)
    with pytest.raises(OSError):
        MockSnapshot([b"a"]).persist(sink)
    assert sink.cancelled
    assert not sink.closed


def test_restore_rejects_non_list_and_closes():
    fsm = MockFSM()
    source = Source(b"\x01")
    with pytest.raises(ValueError):
        fsm.restore(source)
    assert source.was_closed
    assert fsm.logs() == []


def test_config_store_records_configurations():
    store = MockFSMConfigStore()
    assert store.apply(Entry(1, b"cmd")) == 1
    store.store_configuration(1, {"servers": ["a"]})
    store.store_configuration(2, {"servers": ["a", "b"]})
    inner = get_mock_fsm(store)
    assert inner is store.fsm
    assert inner.configurations() == [{"servers": ["a"]}, {"servers": ["a", "b"]}]
    assert inner.logs() == [b"cmd"]


def test_config_store_requires_mock_fsm():
    store = MockFSMConfigStore(Wrapper(MockFSM()))
    with pytest.raises(TypeError):
        store.store_configuration(1, {})
    with pytest.raises(TypeError):
        get_mock_fsm(store)


def test_get_mock_fsm_through_wrappers():
    fsm = MockFSM()
    assert get_mock_fsm(fsm) is fsm
    assert get_mock_fsm(Wrapper(Wrapper(fsm))) is fsm
    assert get_mock_fsm(object()) is None


def test_monotonic_store_delegates():
    base = DictStore()
    store = MockMonotonicLogStore(base)
    assert store.is_monotonic() is True
    store.store_log(Entry(1, b"a"))
    store.store_logs([Entry(2, b"b"), Entry(3, b"c")])
    assert store.first_index() == 1
    assert store.last_index() == 3
    assert store.get_log(2).data == b"b"
    store.delete_range(1, 2)
    assert store.first_index() == 3
    assert sorted(base.entries) == [3]
    with pytest.raises(KeyError):
        store.get_log(1)