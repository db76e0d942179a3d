"""Line framing over a mutable scan buffer with policy-driven growth."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from dataclasses import replace
from enum import Enum
from typing import Final

from ._errors import BufferLimitExceeded
from ._errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_SIZE: Final = 128
DEFAULT_STEP_SIZE: Final = 256
DEFAULT_MAX_SIZE: Final = 8 * 1024 * 1024
UNLIMITED: Final = 0

_NEWLINE: Final = 0x0A


def _check_size(name: str, value: object, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")


@dataclass(frozen=True)
class GrowthPolicy:
    """
    Governs how an owned scan buffer starts small and grows under backpressure.

    A ``max_size`` of ``UNLIMITED`` (0) removes the cap entirely.
    """

    initial_size: int = DEFAULT_INITIAL_SIZE
    step_size: int = DEFAULT_STEP_SIZE
    max_size: int = DEFAULT_MAX_SIZE

    def __post_init__(self) -> None:
        _check_size("initial_size", self.initial_size, 1)
        _check_size("step_size", self.step_size, 1)
        _check_size("max_size", self.max_size, 0)
        if not self.is_unlimited and self.max_size < self.initial_size:
            raise ConfigurationError(
                f"initial_size ({self.initial_size}) exceeds "
                f"max_size ({self.max_size})"
            )

    @classmethod
    def unlimited(
        cls,
        initial_size: int = DEFAULT_INITIAL_SIZE,
        step_size: int = DEFAULT_STEP_SIZE,
    ) -> GrowthPolicy:
        """Builds a policy that never caps buffer growth."""
        return cls(initial_size, step_size, UNLIMITED)

    @property
    def is_unlimited(self) -> bool:
        return self.max_size == UNLIMITED

    def allows(self, size: int) -> bool:
        """Returns True if a buffer of ``size`` bytes fits under the cap."""
        return self.is_unlimited or size <= self.max_size

    def with_max_size(self, max_size: int) -> GrowthPolicy:
        return replace(self, max_size=max_size)


class BufferMode(Enum):
    """Ownership of the scan buffer's byte region."""

    BORROWED = "borrowed"
    OWNED = "owned"


class ScanBuffer:
    """
    Byte region plus the cursors used to frame newline-delimited records.

    ``[start, end)`` bounds the most recently found record, ``fill`` is the
    count of valid bytes and ``line`` the number of records framed so far.
    A borrowed region belongs to the caller and is never written or
    resized; an owned region is a ``bytearray`` managed by the decoder.
    """

    def __init__(
        self, data: bytes | bytearray, mode: BufferMode, fill: int
    ) -> None:
        """
        Initialize scan state over ``data``.

        Args:
            data: The byte region to scan
            mode: Whether ``data`` is caller-owned or decoder-owned
            fill: Number of valid bytes at the front of ``data``
        """
        if not 0 <= fill <= len(data):
            raise ValueError(f"fill {fill} outside buffer of {len(data)}")

        self._data = data
        self.mode: Final = mode
        self.start = 0
        self.end = 0
        self.fill = fill
        self.line = 0

    @classmethod
    def borrowed(cls, data: bytes | bytearray) -> ScanBuffer:
        """Wraps caller bytes in place; every byte counts as filled."""
        if not isinstance(data, bytes | bytearray):
            raise TypeError(
                f"buffer must be bytes or bytearray, not {type(data).__name__}"
            )
        return cls(data, BufferMode.BORROWED, len(data))

    @classmethod
    def owned(cls, size: int) -> ScanBuffer:
        logger.debug("Allocating %d byte scan buffer", size)
        return cls(bytearray(size), BufferMode.OWNED, 0)

    @property
    def buffer(self) -> bytes | bytearray:
        return self._data

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def pending(self) -> int:
        """Bytes written but not yet framed into a record."""
        return self.fill - self.end

    def find_next(self) -> bool:
        """
        Frames the next complete record as ``[start, end)``.

        Bare newlines ahead of the record are skipped. Cursors only move
        when a record with its terminating newline lies entirely below
        ``fill``; a partial trailing record leaves every cursor untouched.

        Returns:
            True if a record was found
        """
        data = self._data
        fill = self.fill
        pos = self.end

        while pos < fill and data[pos] == _NEWLINE:
            pos += 1
        if pos >= fill:
            return False

        newline = data.find(b"\n", pos, fill)
        if newline < 0:
            return False

        self.start = pos
        self.end = newline
        self.line += 1
        return True

    def raw_span(self) -> bytes:
        """Returns a copy of the current record's bytes."""
        return bytes(self._data[self.start : self.end])

    def compact(self) -> None:
        """Moves unframed bytes ``[end, fill)`` to the front of the buffer."""
        data = self._owned("compact")
        if self.end == 0:
            return

        pending = self.pending
        data[:pending] = data[self.end : self.fill]
        logger.debug(
            "Compacted scan buffer, reclaimed %d bytes, %d pending",
            self.end,
            pending,
        )
        self.fill = pending
        self.start = self.end = 0

    def grow(self, new_size: int, policy: GrowthPolicy) -> None:
        """
        Extends the owned buffer to ``new_size`` bytes, keeping its contents.

        Raises:
            BufferLimitExceeded: ``new_size`` is past the policy cap
        """
        data = self._owned("grow")
        if not policy.allows(new_size):
            raise BufferLimitExceeded(new_size, policy.max_size, self.line + 1)
        if new_size <= len(data):
            return

        logger.debug("Growing scan buffer %d -> %d", len(data), new_size)
        data.extend(bytes(new_size - len(data)))

    def shrink(self, new_size: int) -> None:
        """Compacts, then truncates the owned buffer to ``new_size`` bytes."""
        data = self._owned("shrink")
        self.compact()
        if new_size < self.fill:
            raise ValueError(
                f"cannot shrink to {new_size}, {self.fill} bytes pending"
            )

        logger.debug("Shrinking scan buffer %d -> %d", len(data), new_size)
        del data[new_size:]

    @contextmanager
    def free_region(self) -> Iterator[memoryview]:
        """
        Exposes the writable tail ``[fill, capacity)`` of the owned buffer.

        The view is released on exit so the buffer can be resized again.
        """
        data = self._owned("fill")
        with memoryview(data) as view, view[self.fill :] as region:
            yield region

    def commit(self, count: int) -> None:
        """Marks ``count`` bytes written into the free region as valid."""
        if not 0 <= count <= self.capacity - self.fill:
            raise ValueError(
                f"byte source reported {count} bytes for a region of "
                f"{self.capacity - self.fill}"
            )
        self.fill += count

    def _owned(self, operation: str) -> bytearray:
        if self.mode is not BufferMode.OWNED:
            raise TypeError(f"cannot {operation} a borrowed buffer")
        assert isinstance(self._data, bytearray)
        return self._data
