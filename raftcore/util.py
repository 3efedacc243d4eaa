"""Small helpers: randomness, notification queues, msgpack encoding and backoff."""

from __future__ import annotations

import os
import queue
import random
import secrets
import struct
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, TypeVar, Union

import msgpack

_MAX_INT64 = (1 << 63) - 1

# Seconds between 0001-01-01T00:00:00Z and the Unix epoch.
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

Duration = Union[timedelta, float, int]
_D = TypeVar("_D")


def new_seed() -> int:
    """Return a non-negative 63-bit integer drawn from a cryptographic source."""
    return secrets.randbelow(_MAX_INT64)


_rng = random.Random(new_seed())


def _to_nanoseconds(value: Duration) -> int:
    if isinstance(value, timedelta):
        return (value.days * 86_400 + value.seconds) * 1_000_000_000 + value.microseconds * 1_000
    return int(value * 1_000_000_000)


def random_timeout(min_val: Duration) -> Optional[threading.Event]:
    """Return an event that becomes set after a delay between min_val and 2x min_val.

    A zero duration yields None, meaning the timeout never fires.
    """
    min_ns = _to_nanoseconds(min_val)
    if min_ns <= 0:
        return None
    delay_ns = min_ns + _rng.randrange(min_ns)
    fired = threading.Event()
    timer = threading.Timer(delay_ns / 1_000_000_000, fired.set)
    timer.daemon = True
    timer.start()
    return fired


def generate_uuid() -> str:
    """Return a random identifier in the 8-4-4-4-12 hexadecimal layout."""
    buf = os.urandom(16)
    return "-".join(
        (buf[0:4].hex(), buf[4:6].hex(), buf[6:8].hex(), buf[8:10].hex(), buf[10:16].hex())
    )


def async_notify(ch: queue.Queue) -> None:
    """Put a token on ch without blocking; drop it if ch is full."""
    try:
        ch.put_nowait(None)
    except queue.Full:
        pass


def drain_notify(ch: queue.Queue) -> bool:
    """Take one pending item from ch without blocking; report whether there was one."""
    try:
        ch.get_nowait()
    except queue.Empty:
        return False
    return True


def async_notify_bool(ch: queue.Queue, value: bool) -> None:
    """Put value on ch without blocking; drop it if ch is full."""
    try:
        ch.put_nowait(value)
    except queue.Full:
        pass


def override_notify_bool(ch: queue.Queue, value: bool) -> None:
    """Put value on a one-slot queue, replacing any value already waiting there.

    Not safe for several concurrent callers on the same queue.
    """
    try:
        ch.put_nowait(value)
        return
    except queue.Full:
        pass
    try:
        ch.get_nowait()
    except queue.Empty:
        pass
    try:
        ch.put_nowait(value)
    except queue.Full:
        raise RuntimeError("race: channel was sent concurrently") from None


def _time_binary(moment: datetime) -> bytes:
    """Encode a datetime in the version-1 binary time layout."""
    if moment.tzinfo is None or moment.utcoffset() == timedelta(0) and moment.tzinfo is timezone.utc:
        offset_minutes = -1
        aware = moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment
    else:
        offset = moment.utcoffset()
        assert offset is not None
        total_seconds = offset.days * 86_400 + offset.seconds
        if total_seconds % 60 or offset.microseconds:
            raise ValueError("time zone offset is not a whole number of minutes")
        offset_minutes = total_seconds // 60
        if not -32768 <= offset_minutes <= 32767:
            raise ValueError("time zone offset out of range")
        aware = moment
    delta = aware - _ZERO_TIME
    seconds = delta.days * 86_400 + delta.seconds
    nanos = delta.microseconds * 1_000
    return struct.pack(">Bqih", 1, seconds, nanos, offset_minutes)


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return _time_binary(obj)
    raise TypeError(f"cannot encode object of type {type(obj).__name__}")


def encode_msgpack(obj: Any) -> bytes:
    """Encode obj as msgpack, writing byte strings and times in the raw string family."""
    return msgpack.packb(obj, use_bin_type=False, default=_encode_default)


def decode_msgpack(buf: bytes) -> Any:
    """Decode one msgpack value from buf; raw strings come back as bytes."""
    return msgpack.unpackb(buf, raw=True, strict_map_key=False)


def backoff(base: _D, round_: int, limit: int) -> _D:
    """Scale base by doubling for each round past the second, up to limit."""
    power = min(round_, limit)
    while power > 2:
        base = base * 2
        power -= 1
    return base


def capped_exponential_backoff(base: _D, round_: int, limit: int, cap: _D) -> _D:
    """Like backoff, but never return more than cap."""
    power = min(round_, limit)
    while power > 2:
        if base > cap:
            return cap
        base = base * 2
        power -= 1
    if base > cap:
        return cap
    return base