"""
Benchmark suite for FOA decoding performance.

Compares decoding an FOA document entity by entity against decoding the
same entities stored as JSON lines with:
- Python standard library json
- orjson (C-optimized)
- ujson (ultra-fast JSON)

Measures decoding speed and memory usage across different document shapes.
"""
