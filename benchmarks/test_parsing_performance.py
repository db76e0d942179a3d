"""
FOA decoding performance benchmarks compared against JSON lines decoding.

Compares decoding speed across different document shapes:
- foa over a fixed in-memory buffer
- foa over a stream with the default growth policy
- Standard library json, one line at a time
- orjson (C-optimized), one line at a time
- ujson (ultra-fast JSON), one line at a time
"""

import io
import json
from collections.abc import Callable
from typing import Any

import orjson
import pytest
import ujson  # type: ignore[import-untyped]

import foa
from benchmarks.data_generators import generate_test_data
from benchmarks.data_generators import to_foa
from benchmarks.data_generators import to_json_lines


def _json_lines(loads: Callable[[bytes], Any]) -> Callable[[bytes], list[Any]]:
    def decode(data: bytes) -> list[Any]:
        return [loads(line) for line in data.splitlines() if line]

    return decode


def _foa_stream(data: bytes) -> list[foa.Entity]:
    return foa.load(io.BytesIO(data))


DECODERS = [
    ("foa_buffer", foa.loads),
    ("foa_stream", _foa_stream),
    ("stdlib_json", _json_lines(json.loads)),
    ("orjson", _json_lines(orjson.loads)),
    ("ujson", _json_lines(ujson.loads)),
]


def _encode_for(decoder: str, data_type: str) -> tuple[bytes, int]:
    entities = generate_test_data(data_type)
    if decoder.startswith("foa"):
        return to_foa(entities), len(entities)
    return to_json_lines(entities), len(entities)


class TestDecodingBenchmarks:
    """Benchmarks for entity decoding across codecs."""

    @pytest.mark.benchmark(group="flat_records")
    @pytest.mark.parametrize("decoder,decode_func", DECODERS)
    def test_flat_record_decoding(
        self,
        benchmark: Any,
        decoder: str,
        decode_func: Callable[[bytes], list[Any]],
    ) -> None:
        """Benchmarks decoding of many short named values."""
        test_data, count = _encode_for(decoder, "flat_records")
        result = benchmark(decode_func, test_data)
        assert len(result) == count

    @pytest.mark.benchmark(group="nested_structures")
    @pytest.mark.parametrize("decoder,decode_func", DECODERS)
    def test_nested_structure_decoding(
        self,
        benchmark: Any,
        decoder: str,
        decode_func: Callable[[bytes], list[Any]],
    ) -> None:
        """Benchmarks decoding of deeply nested objects and arrays."""
        test_data, count = _encode_for(decoder, "nested_structure")
        result = benchmark(decode_func, test_data)
        assert len(result) == count

    @pytest.mark.benchmark(group="escape_heavy")
    @pytest.mark.parametrize("decoder,decode_func", DECODERS)
    def test_escape_heavy_decoding(
        self,
        benchmark: Any,
        decoder: str,
        decode_func: Callable[[bytes], list[Any]],
    ) -> None:
        """Benchmarks decoding of values dense in escaped characters."""
        test_data, count = _encode_for(decoder, "escape_heavy")
        result = benchmark(decode_func, test_data)
        assert len(result) == count

    @pytest.mark.benchmark(group="long_values")
    @pytest.mark.parametrize("decoder,decode_func", DECODERS)
    def test_long_value_decoding(
        self,
        benchmark: Any,
        decoder: str,
        decode_func: Callable[[bytes], list[Any]],
    ) -> None:
        """Benchmarks decoding of values that force buffer growth."""
        test_data, count = _encode_for(decoder, "long_values")
        result = benchmark(decode_func, test_data)
        assert len(result) == count
