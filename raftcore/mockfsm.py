"""In-memory state machine, snapshot and log store doubles for exercising clusters."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterable, Optional

from raftcore.util import decode_msgpack, encode_msgpack

_COMMAND_NAMES = frozenset({"command", "logcommand", "log_command"})


def _is_command(log: Any) -> bool:
    """Report whether a log entry carries a client command."""
    kind = getattr(log, "type", 0)
    name = getattr(kind, "name", None)
    if isinstance(name, str):
        return name.lower() in _COMMAND_NAMES
    return kind == 0


class MockSnapshot:
    """A point-in-time copy of a MockFSM's applied entries."""

    def __init__(self, logs: Iterable[bytes], max_index: Optional[int] = None) -> None:
        self._logs = list(logs)
        self.max_index = len(self._logs) if max_index is None else max_index

    @property
    def logs(self) -> list[bytes]:
        return self._logs[: self.max_index]

    def persist(self, sink: Any) -> None:
        """Write the entries to sink as msgpack, cancelling the sink on failure."""
        try:
            sink.write(encode_msgpack(self._logs[: self.max_index]))
        except Exception:
            sink.cancel()
            raise
        sink.close()

    def release(self) -> None:
        """Nothing is held, so there is nothing to free."""


class MockFSM:
    """A state machine that records every command it applies, in order."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._logs: list[bytes] = []
        self._configurations: list[Any] = []

    def apply(self, log: Any) -> int:
        """Record the entry's data and return how many entries are now held."""
        with self.lock:
            self._logs.append(log.data)
            return len(self._logs)

    def apply_batch(self, logs: Iterable[Any]) -> list[Optional[int]]:
        """Apply command entries from logs; other entries yield None."""
        results: list[Optional[int]] = []
        with self.lock:
            for log in logs:
                if _is_command(log):
                    self._logs.append(log.data)
                    results.append(len(self._logs))
                else:
                    results.append(None)
        return results

    def snapshot(self) -> MockSnapshot:
        """Capture the entries applied so far."""
        with self.lock:
            return MockSnapshot(self._logs, len(self._logs))

    def restore(self, source: BinaryIO) -> None:
        """Replace the held entries with those read from source, then close it."""
        with self.lock:
            try:
                self._logs = []
                decoded = decode_msgpack(source.read())
                if decoded is None:
                    return
                if not isinstance(decoded, list):
                    raise ValueError("snapshot does not hold a list of entries")
                self._logs = [bytes(entry) for entry in decoded]
            finally:
                source.close()

    def logs(self) -> list[bytes]:
        """Return the entries applied so far."""
        with self.lock:
            return list(self._logs)

    def configurations(self) -> list[Any]:
        """Return the configurations stored so far."""
        with self.lock:
            return list(self._configurations)

    def _add_configuration(self, configuration: Any) -> None:
        with self.lock:
            self._configurations.append(configuration)


class MockFSMConfigStore:
    """Wraps a MockFSM and also records each configuration it is given."""

    def __init__(self, fsm: Any = None) -> None:
        self.fsm = MockFSM() if fsm is None else fsm

    def apply(self, log: Any) -> Any:
        return self.fsm.apply(log)

    def snapshot(self) -> Any:
        return self.fsm.snapshot()

    def restore(self, source: BinaryIO) -> None:
        self.fsm.restore(source)

    def store_configuration(self, index: int, configuration: Any) -> None:
        """Append configuration to the wrapped MockFSM's list."""
        if not isinstance(self.fsm, MockFSM):
            raise TypeError("configuration store must wrap a MockFSM")
        self.fsm._add_configuration(configuration)


class WrappingFSM(ABC):
    """A state machine that delegates to another one."""

    @abstractmethod
    def underlying(self) -> Any:
        """Return the wrapped state machine."""


def get_mock_fsm(fsm: Any) -> Optional[MockFSM]:
    """Find the MockFSM behind fsm, or None when there is none."""
    if isinstance(fsm, MockFSM):
        return fsm
    if isinstance(fsm, MockFSMConfigStore):
        if not isinstance(fsm.fsm, MockFSM):
            raise TypeError("configuration store does not wrap a MockFSM")
        return fsm.fsm
    if isinstance(fsm, WrappingFSM):
        return get_mock_fsm(fsm.underlying())
    return None


class MockMonotonicLogStore:
    """A log store wrapper that declares its indexes never go backwards."""

    def __init__(self, store: Any) -> None:
        self.store = store

    def is_monotonic(self) -> bool:
        return True

    def first_index(self) -> int:
        return self.store.first_index()

    def last_index(self) -> int:
        return self.store.last_index()

    def get_log(self, index: int) -> Any:
        return self.store.get_log(index)

    def store_log(self, log: Any) -> None:
        self.store.store_log(log)

    def store_logs(self, logs: Iterable[Any]) -> None:
        self.store.store_logs(logs)

    def delete_range(self, min_index: int, max_index: int) -> None:
        self.store.delete_range(min_index, max_index)