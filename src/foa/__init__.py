"""
Streaming codec for FOA, a line-oriented serialization format.

Each line carries one entity: a structural marker opening or closing an
object ``(`` ``)`` or array ``[`` ``]``, or a scalar value, optionally
prefixed with ``<name> = ``. The decoder frames lines directly over a scan
buffer that is either borrowed from the caller or owned and grown under a
``GrowthPolicy``, so arbitrarily long streams decode in bounded memory.
"""

import codecs
import io
import logging
import os
import time
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import IO
from typing import Any
from typing import Final
from typing import Protocol
from typing import TypeAlias
from typing import runtime_checkable

from ._errors import BufferLimitExceeded
from ._errors import ConfigurationError
from ._errors import FOADecodeError
from ._scan_buffer import UNLIMITED
from ._scan_buffer import BufferMode
from ._scan_buffer import GrowthPolicy
from ._scan_buffer import ScanBuffer

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

LineNumber: TypeAlias = int
DataValue = str | int | float

# Profiling infrastructure - zero-cost when disabled
PROFILE_HOT_PATHS = __debug__ and "FOA_PROFILE" in os.environ


@dataclass
class HotPathStats:
    """Statistics for profiling hot paths during decoding."""

    function_name: str
    call_count: int = 0
    total_time_ns: int = 0
    bytes_processed: int = 0

    def record_call(self, duration_ns: int, nbytes: int = 0) -> None:
        """Records a function call with timing and byte processing info."""
        self.call_count += 1
        self.total_time_ns += duration_ns
        self.bytes_processed += nbytes


if PROFILE_HOT_PATHS:
    _hot_path_stats: dict[str, HotPathStats] = {}

    class ProfileContext:
        """Context manager for profiling hot paths."""

        def __init__(self, func_name: str, nbytes: int = 0):
            self.func_name = func_name
            self.nbytes = nbytes
            self.start_time = 0

        def __enter__(self) -> "ProfileContext":
            self.start_time = time.perf_counter_ns()
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            duration = time.perf_counter_ns() - self.start_time
            if self.func_name not in _hot_path_stats:
                _hot_path_stats[self.func_name] = HotPathStats(self.func_name)
            _hot_path_stats[self.func_name].record_call(duration, self.nbytes)

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        """Returns current profiling statistics."""
        return _hot_path_stats.copy()

    def clear_hot_path_stats() -> None:
        """Clears profiling statistics."""
        _hot_path_stats.clear()

else:

    class ProfileContext:  # type: ignore[no-redef]
        def __init__(self, func_name: str, nbytes: int = 0) -> None:
            pass

        def __enter__(self) -> "ProfileContext":
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            pass

    def get_hot_path_stats() -> dict[str, HotPathStats]:
        return {}

    def clear_hot_path_stats() -> None:
        pass


class EntityType(Enum):
    """
    Kind of a decoded entity.

    Structural kinds carry the marker character as their value.
    """

    START_OBJECT = "("
    START_ARRAY = "["
    END_OBJECT = ")"
    END_ARRAY = "]"
    DATA = "data"


_STRUCTURAL_CHARS: Final = "([])"


@dataclass(frozen=True)
class Entity:
    """
    One decoded line: a structural marker or a (possibly named) value.

    Text is copied out of the scan buffer, so entities stay valid after the
    decoder compacts or regrows it.
    """

    name: str | None
    data: str
    kind: EntityType
    line: LineNumber

    @property
    def is_structural(self) -> bool:
        return self.kind is not EntityType.DATA


# Reserved characters and their %XX codes (uppercase hex code point)
RESERVED_CHARS: Final = "([])="
_ESCAPE_CODES: Final = {char: f"%{ord(char):02X}" for char in RESERVED_CHARS}


def escape(text: str, enabled: bool = True) -> str:
    """Replaces each reserved character with its ``%XX`` code."""
    if not enabled:
        return text
    for char, code in _ESCAPE_CODES.items():
        text = text.replace(char, code)
    return text


def unescape(text: str, enabled: bool = True) -> str:
    """Replaces each reserved character's ``%XX`` code with the character."""
    if not enabled or "%" not in text:
        return text
    for char, code in _ESCAPE_CODES.items():
        text = text.replace(code, char)
    return text


def _check_encoding(encoding: str) -> None:
    if not isinstance(encoding, str):
        raise TypeError("encoding must be a string")
    try:
        codecs.lookup(encoding)
        newline = "\n".encode(encoding)
    except LookupError as e:
        raise ConfigurationError(f"Unknown text encoding: {encoding}") from e
    # Records are framed on raw 0x0A bytes
    if newline != b"\n":
        raise ConfigurationError(
            f"Encoding {encoding} does not encode newline as a single byte"
        )


@dataclass(frozen=True)
class DecodeConfig:
    """
    Configures FOA decoding behavior with immutable settings.

    ``policy`` only applies to sources the decoder buffers itself.
    """

    escape: bool = True
    encoding: str = "utf-8"
    policy: GrowthPolicy = field(default_factory=GrowthPolicy)

    def __post_init__(self) -> None:
        if not isinstance(self.escape, bool):
            raise TypeError("escape must be a boolean")
        if not isinstance(self.policy, GrowthPolicy):
            raise TypeError("policy must be a GrowthPolicy")
        _check_encoding(self.encoding)


@dataclass(frozen=True)
class EncodeConfig:
    """Configures FOA encoding behavior with immutable settings."""

    escape: bool = True
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not isinstance(self.escape, bool):
            raise TypeError("escape must be a boolean")
        _check_encoding(self.encoding)


def decode_span(raw: bytes, line: LineNumber, config: DecodeConfig) -> Entity:
    """
    Turns the raw bytes of one record into an Entity.

    A lone structural character is always structural, even when it was
    meant as a one-character value; escaped values avoid the ambiguity.
    """
    with ProfileContext("decode_span", len(raw)):
        try:
            text = raw.decode(config.encoding).strip()
        except UnicodeDecodeError as e:
            raise FOADecodeError(
                f"Cannot decode record as {config.encoding}", line
            ) from e

        name: str | None
        head, separator, value = text.partition("=")
        if separator:
            name, value = head.strip(), value.strip()
        else:
            name, value = None, text

        if len(value) == 1 and value in _STRUCTURAL_CHARS:
            return Entity(name, value, EntityType(value), line)
        data = unescape(value, config.escape)
        return Entity(name, data, EntityType.DATA, line)


@runtime_checkable
class ByteSource(Protocol):
    """Host collaborator supplying bytes to a growable decoder."""

    def fill(self, region: memoryview) -> int:
        """Writes up to ``len(region)`` bytes; returning 0 means exhausted."""
        ...


class StreamSource:
    """Adapts a binary file-like object to the ByteSource interface."""

    def __init__(self, fp: IO[bytes]) -> None:
        if not hasattr(fp, "read"):
            raise TypeError("fp must have a read() method")
        if isinstance(fp, io.TextIOBase):
            raise TypeError("fp must be opened in binary mode")

        self.fp = fp
        self._readinto = getattr(fp, "readinto", None)

    def fill(self, region: memoryview) -> int:
        """
        Reads the next chunk of the stream into ``region``.

        Non-blocking streams are not supported: a ``readinto`` that returns
        None because no data is ready counts as end of input.
        """
        if self._readinto is not None:
            return self._readinto(region) or 0

        chunk = self.fp.read(len(region))
        if not isinstance(chunk, bytes | bytearray):
            raise TypeError(
                f"fp.read() must return bytes, not {type(chunk).__name__}"
            )
        if len(chunk) > len(region):
            raise ValueError(
                f"fp.read() returned {len(chunk)} bytes, "
                f"more than the {len(region)} requested"
            )
        region[: len(chunk)] = chunk
        return len(chunk)


class FixedSource:
    """
    Decodes a caller-supplied buffer in place.

    The buffer is never refilled or resized; running out of complete
    records is end of input, including for an unterminated trailing line.
    """

    def __init__(self, data: bytes | bytearray) -> None:
        self.scan: Final = ScanBuffer.borrowed(data)

    def advance(self) -> bool:
        with ProfileContext("find_next"):
            return self.scan.find_next()


class GrowableSource:
    """
    Decodes bytes pulled from a host into an owned, growable scan buffer.

    A partial trailing record is retried after every refill. The buffer only
    grows when a single refill filled all free space without completing a
    record, and growth past a finite policy cap is fatal.
    """

    def __init__(self, host: ByteSource, policy: GrowthPolicy) -> None:
        self.host = host
        self.policy = policy
        self.scan: Final = ScanBuffer.owned(policy.initial_size)

    def advance(self) -> bool:
        scan = self.scan
        with ProfileContext("find_next"):
            if scan.find_next():
                return True

        scan.compact()
        while True:
            if scan.fill == scan.capacity:
                self._grow()

            with ProfileContext("refill"), scan.free_region() as region:
                want = len(region)
                count = self.host.fill(region)

            if not count:
                logger.debug(
                    "End of input after line %d, %d bytes unterminated",
                    scan.line,
                    scan.pending,
                )
                return False
            scan.commit(count)

            with ProfileContext("find_next", count):
                if scan.find_next():
                    return True

            if count == want:
                self._grow()

    def _grow(self) -> None:
        self.scan.grow(self.scan.capacity + self.policy.step_size, self.policy)

    def set_policy(self, policy: GrowthPolicy) -> GrowthPolicy:
        """
        Swaps the growth policy, shrinking the buffer to a smaller cap.

        A cap below the pending byte count is raised to fit them.

        Returns:
            The policy actually in effect
        """
        scan = self.scan
        if not policy.is_unlimited and policy.max_size < scan.capacity:
            if policy.max_size < scan.pending:
                logger.debug(
                    "Raising max_size %d to %d pending bytes",
                    policy.max_size,
                    scan.pending,
                )
                policy = policy.with_max_size(scan.pending)
            scan.shrink(policy.max_size)

        self.policy = policy
        return policy


class Decoder:
    """
    Pull-based FOA decoder producing one Entity per call.

    Sources are bytes or str (decoded in place, never grown), binary
    streams, or any ByteSource (buffered per the growth policy). Attaching
    a new source resets all scan state. A decoder must not be shared
    between threads without external locking.
    """

    def __init__(
        self,
        source: Any = None,
        *,
        config: DecodeConfig | None = None,
        **kwargs: Any,
    ) -> None:
        if config is not None and kwargs:
            raise TypeError("pass either config or decoding options, not both")

        self._config = config if config is not None else DecodeConfig(**kwargs)
        self._policy = self._config.policy
        self._source: FixedSource | GrowableSource | None = None

        if source is not None:
            self.attach(source)

    @property
    def config(self) -> DecodeConfig:
        return self._config

    @property
    def policy(self) -> GrowthPolicy:
        return self._policy

    @property
    def source(self) -> FixedSource | GrowableSource | None:
        return self._source

    @property
    def buffer(self) -> bytes | bytearray | None:
        """The scan buffer currently decoded, if a source is attached."""
        return self._source.scan.buffer if self._source else None

    @property
    def line(self) -> LineNumber:
        """Source line of the last entity decoded from the current source."""
        return self._source.scan.line if self._source else 0

    def attach(self, source: Any) -> None:
        """Attaches a buffer, str, binary stream or ByteSource to decode."""
        if isinstance(source, str):
            self.set_buffer(source.encode(self._config.encoding))
        elif isinstance(source, bytes | bytearray):
            self.set_buffer(source)
        elif isinstance(source, ByteSource):
            self.set_source(source)
        elif hasattr(source, "read"):
            self.set_stream(source)
        else:
            raise TypeError(
                f"Cannot decode from object of type {type(source).__name__}"
            )

    def set_buffer(self, data: bytes | bytearray) -> None:
        self._source = FixedSource(data)
        logger.debug("Attached %d byte fixed buffer", len(data))

    def set_stream(self, fp: IO[bytes]) -> None:
        self.set_source(StreamSource(fp))

    def set_source(self, host: ByteSource) -> None:
        self._source = GrowableSource(host, self._policy)
        logger.debug("Attached growable source %r", host)

    def set_policy(self, policy: GrowthPolicy) -> GrowthPolicy:
        """
        Swaps the growth policy, on the live buffer too.

        Never drops pending bytes: a cap below them is raised to fit.

        Returns:
            The policy actually in effect
        """
        if not isinstance(policy, GrowthPolicy):
            raise TypeError("policy must be a GrowthPolicy")

        if isinstance(self._source, GrowableSource):
            policy = self._source.set_policy(policy)
        self._policy = policy
        return policy

    def next_entity(self) -> Entity | None:
        """
        Decodes the next entity, refilling the buffer as needed.

        Returns:
            The entity, or None at end of input

        Raises:
            BufferLimitExceeded: a record does not fit under the policy cap
            FOADecodeError: a record is not valid in the configured encoding
        """
        source = self._source
        if source is None or not source.advance():
            return None

        scan = source.scan
        return decode_span(scan.raw_span(), scan.line, self._config)

    def __iter__(self) -> Iterator[Entity]:
        return self

    def __next__(self) -> Entity:
        entity = self.next_entity()
        if entity is None:
            raise StopIteration
        return entity


class Encoder:
    """
    Writes entities as FOA lines to a binary stream.

    Without a stream the encoder only keeps the last line it encoded.
    """

    def __init__(
        self,
        fp: IO[bytes] | None = None,
        *,
        config: EncodeConfig | None = None,
        **kwargs: Any,
    ) -> None:
        if config is not None and kwargs:
            raise TypeError("pass either config or encoding options, not both")

        self._fp: IO[bytes] | None = None
        self.set_stream(fp)
        self._config = config if config is not None else EncodeConfig(**kwargs)
        self._last = b""

    @property
    def config(self) -> EncodeConfig:
        return self._config

    @property
    def stream(self) -> IO[bytes] | None:
        return self._fp

    def set_stream(self, fp: IO[bytes] | None) -> None:
        """Retargets output; None keeps only the last encoded line."""
        if fp is not None and not hasattr(fp, "write"):
            raise TypeError("fp must have a write() method")
        self._fp = fp

    @property
    def last_bytes(self) -> bytes:
        return self._last

    @property
    def last_line(self) -> str:
        return self._last.decode(self._config.encoding)

    def write_structural(
        self, kind: EntityType, name: str | None = None
    ) -> None:
        if not isinstance(kind, EntityType) or kind is EntityType.DATA:
            raise ValueError(f"{kind!r} is not a structural entity type")
        self._write_line(kind.value, name)

    def write_data(self, value: DataValue, name: str | None = None) -> None:
        if isinstance(value, bool):
            raise TypeError("Object of type bool is not FOA serializable")
        if isinstance(value, str):
            if "\n" in value:
                raise ValueError("values must not contain line breaks")
            if not value and name is None:
                raise ValueError("an unnamed empty value encodes a blank line")
            if value != value.strip():
                raise ValueError(
                    f"values must not have surrounding whitespace: {value!r}"
                )
            text = escape(value, self._config.escape)
        elif isinstance(value, int | float):
            text = str(value)
        else:
            kind = type(value).__name__
            msg = f"Object of type {kind} is not FOA serializable"
            raise TypeError(msg)
        self._write_line(text, name)

    def write(self, entity: Entity) -> None:
        """Re-encodes a decoded entity."""
        if entity.is_structural:
            self.write_structural(entity.kind, entity.name)
        else:
            self.write_data(entity.data, entity.name)

    def _write_line(self, text: str, name: str | None) -> None:
        if name is not None:
            if "=" in name or "\n" in name:
                raise ValueError(
                    f"names must not contain '=' or line breaks: {name!r}"
                )
            if name != name.strip():
                raise ValueError(
                    f"names must not have surrounding whitespace: {name!r}"
                )
            text = f"{name} = {text}"

        self._last = f"{text}\n".encode(self._config.encoding)
        if self._fp is not None:
            self._fp.write(self._last)


def loads(s: str | bytes | bytearray, **kwargs: Any) -> list[Entity]:
    """
    Decodes an in-memory FOA document into its entities.

    The document is scanned in place; an unterminated last line is dropped.
    """
    if not isinstance(s, str | bytes | bytearray):
        raise TypeError(
            f"the FOA document must be str or bytes, not {type(s).__name__}"
        )
    return list(Decoder(s, **kwargs))


def iterload(fp: IO[bytes], **kwargs: Any) -> Iterator[Entity]:
    """Lazily decodes entities from a binary stream in bounded memory."""
    decoder = Decoder(**kwargs)
    decoder.set_stream(fp)
    return decoder


def load(fp: IO[bytes], **kwargs: Any) -> list[Entity]:
    """Decodes every entity from a binary stream."""
    return list(iterload(fp, **kwargs))


def dump(entities: Iterable[Entity], fp: IO[bytes], **kwargs: Any) -> None:
    """Encodes entities as FOA lines into a binary stream."""
    encoder = Encoder(fp, **kwargs)
    for entity in entities:
        encoder.write(entity)


def dumps(entities: Iterable[Entity], **kwargs: Any) -> str:
    """Encodes entities as an FOA document string."""
    config = EncodeConfig(**kwargs)
    out = io.BytesIO()
    dump(entities, out, config=config)
    return out.getvalue().decode(config.encoding)


__all__ = [
    "UNLIMITED",
    "BufferLimitExceeded",
    "BufferMode",
    "ByteSource",
    "ConfigurationError",
    "DecodeConfig",
    "Decoder",
    "EncodeConfig",
    "Encoder",
    "Entity",
    "EntityType",
    "FOADecodeError",
    "FixedSource",
    "GrowableSource",
    "GrowthPolicy",
    "HotPathStats",
    "RESERVED_CHARS",
    "ScanBuffer",
    "StreamSource",
    "clear_hot_path_stats",
    "decode_span",
    "dump",
    "dumps",
    "escape",
    "get_hot_path_stats",
    "iterload",
    "load",
    "loads",
    "unescape",
]
