"""
Time-ordered identifiers for claims and results.

Identifiers are ULIDs: a 48-bit millisecond timestamp followed by 80 bits of
entropy, encoded as 26 Crockford base32 characters. Because the timestamp is
the prefix, plain string comparison of two ids orders them chronologically.

Monotonicity:
    Random entropy alone does not order two ids minted in the same
    millisecond. IdGenerator therefore keeps the last timestamp and entropy
    it handed out and, for any call in the same (or an earlier) millisecond,
    increments the previous entropy by a random amount instead of drawing
    fresh bytes. The state is guarded by a lock, so one generator shared by
    every thread of a process never produces duplicate or out-of-order ids.

Usage:
    ids = IdGenerator()
    claim_id = ids.new_id()

    # Tests can pin the clock and the entropy source
    ids = IdGenerator(clock=lambda: 1_600_000_000_000, entropy=lambda n: b"\\x00" * n)
"""

import os
import threading
import time
from datetime import UTC, datetime
from typing import Callable

from claimstore.errors import IdGenerationError

# Crockford's base32 alphabet, which sorts in the same order as the values it encodes
ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH = 26

TIMESTAMP_BITS = 48
ENTROPY_BITS = 80
ENTROPY_BYTES = ENTROPY_BITS // 8

MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
MAX_ENTROPY = (1 << ENTROPY_BITS) - 1

# Upper bound of the random increment applied within one millisecond
MAX_INCREMENT = 1 << 32


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def encode(timestamp_ms: int, entropy: int) -> str:
    """Encode a timestamp and entropy pair as a 26 character ULID string."""
    value = (timestamp_ms << ENTROPY_BITS) | entropy
    chars = []
    for _ in range(ULID_LENGTH):
        chars.append(ENCODING[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


def decode_timestamp(ulid: str) -> datetime:
    """Return the UTC creation time embedded in a ULID string."""
    if len(ulid) != ULID_LENGTH:
        msg = f"invalid ULID length {len(ulid)}: {ulid!r}"
        raise ValueError(msg)
    value = 0
    for char in ulid.upper():
        index = ENCODING.find(char)
        if index < 0:
            msg = f"invalid ULID character {char!r}: {ulid!r}"
            raise ValueError(msg)
        value = (value << 5) | index
    timestamp_ms = value >> ENTROPY_BITS
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)


class IdGenerator:
    """
    Thread-safe, monotonic ULID generator.

    A single instance should be shared by everything in a process that creates
    claims and results; separate instances only guarantee ordering between the
    ids they generate themselves.

    Args:
        entropy: Callable returning n random bytes. Defaults to os.urandom.
        clock: Callable returning the current Unix time in milliseconds.
    """

    def __init__(
        self,
        entropy: Callable[[int], bytes] = os.urandom,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._entropy = entropy
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_entropy = 0

    def new_id(self) -> str:
        """
        Generate a new identifier.

        Returns:
            A ULID string greater than every id previously returned by this
            generator.

        Raises:
            IdGenerationError: If the entropy source fails, the clock is out of
                range, or the entropy for the current millisecond is exhausted.
        """
        with self._lock:
            try:
                timestamp_ms = int(self._clock())
            except Exception as e:
                raise IdGenerationError(underlying_error=str(e)) from e
            if timestamp_ms < 0 or timestamp_ms > MAX_TIMESTAMP:
                raise IdGenerationError(
                    underlying_error=f"timestamp {timestamp_ms} out of range"
                )

            if timestamp_ms <= self._last_ms:
                # Same millisecond, or the clock stepped backwards: stay on the
                # last timestamp and move the entropy forward.
                timestamp_ms = self._last_ms
                entropy = self._last_entropy + self._increment()
                if entropy > MAX_ENTROPY:
                    raise IdGenerationError(
                        underlying_error="monotonic entropy overflow"
                    )
            else:
                entropy = int.from_bytes(self._read_entropy(ENTROPY_BYTES), "big")

            self._last_ms = timestamp_ms
            self._last_entropy = entropy
            return encode(timestamp_ms, entropy)

    def must_new_id(self) -> str:
        """
        Generate a new identifier for call sites that treat generation as infallible.

        Raises:
            RuntimeError: If generation fails. The IdGenerationError is chained
                as the cause.
        """
        try:
            return self.new_id()
        except IdGenerationError as e:
            raise RuntimeError(str(e)) from e

    def _increment(self) -> int:
        raw = int.from_bytes(self._read_entropy(4), "big")
        return (raw % MAX_INCREMENT) + 1

    def _read_entropy(self, size: int) -> bytes:
        try:
            data = self._entropy(size)
        except Exception as e:
            raise IdGenerationError(underlying_error=str(e)) from e
        if len(data) < size:
            raise IdGenerationError(
                underlying_error=f"entropy source returned {len(data)} of {size} bytes"
            )
        return data[:size]
