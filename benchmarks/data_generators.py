"""
Test data generators for FOA decoding benchmarks.

Creates entity sequences of different shapes, then renders each one both as
an FOA document and as JSON lines holding the same (name, data) pairs:
- Flat records of short named values
- Deeply nested objects and arrays
- Values dense in reserved characters that need escaping
- Long values that force the scan buffer to grow
"""

import json
import random
import string

import foa
from foa import Entity
from foa import EntityType

_RESERVED_PROBABILITY = 0.3
_LONG_VALUE_SIZE = 4096


def generate_test_data(data_type: str) -> list[Entity]:
    """Generates an entity sequence based on specified type."""
    generators = {
        "flat_records": _generate_flat_records,
        "nested_structure": _generate_nested_structure,
        "escape_heavy": _generate_escape_heavy,
        "long_values": _generate_long_values,
    }

    if data_type not in generators:
        raise ValueError(f"Unknown data type: {data_type}")

    return generators[data_type]()


def to_foa(entities: list[Entity]) -> bytes:
    """Renders entities as an FOA document."""
    return foa.dumps(entities).encode("utf-8")


def to_json_lines(entities: list[Entity]) -> bytes:
    """Renders the same entities as one JSON object per line."""
    lines = [
        json.dumps({"name": entity.name, "data": entity.data})
        for entity in entities
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def _data(value: str, name: str | None = None) -> Entity:
    return Entity(name, value, EntityType.DATA, 0)


def _marker(kind: EntityType, name: str | None = None) -> Entity:
    return Entity(name, kind.value, kind, 0)


def _generate_flat_records() -> list[Entity]:
    """Generates an array of small objects with short named values."""
    entities = [_marker(EntityType.START_ARRAY, "records")]
    for i in range(500):
        entities += [
            _marker(EntityType.START_OBJECT),
            _data(str(i), "id"),
            _data(_random_string(12), "name"),
            _data(f"{_random_string(8)}@example.com", "email"),
            _data(str(round(random.uniform(0, 1000), 2)), "balance"),
            _marker(EntityType.END_OBJECT),
        ]
    entities.append(_marker(EntityType.END_ARRAY))
    return entities


def _generate_nested_structure() -> list[Entity]:
    """Generates objects nested eight levels deep."""

    def create_nested(depth: int, name: str | None) -> list[Entity]:
        if depth <= 0:
            return [_data(_random_string(10), name)]

        entities = [_marker(EntityType.START_OBJECT, name)]
        entities.append(_data(str(depth), "level"))
        entities.append(_marker(EntityType.START_ARRAY, "items"))
        for _ in range(2):
            entities += create_nested(depth - 2, None)
        entities.append(_marker(EntityType.END_ARRAY))
        entities += create_nested(depth - 1, "nested")
        entities.append(_marker(EntityType.END_OBJECT))
        return entities

    return create_nested(8, "root")


def _generate_escape_heavy() -> list[Entity]:
    """Generates values where reserved characters are frequent."""

    def create_reserved_string() -> str:
        chars = []
        for _ in range(50):
            if random.random() < _RESERVED_PROBABILITY:
                chars.append(random.choice(foa.RESERVED_CHARS))
            else:
                chars.append(random.choice(string.ascii_letters + " "))
        return "".join(chars).strip() or "x"

    return [
        _data(create_reserved_string(), f"key_{i}") for i in range(1000)
    ]


def _generate_long_values() -> list[Entity]:
    """Generates values larger than the default initial buffer size."""
    return [
        _data(_random_string(_LONG_VALUE_SIZE), f"blob_{i}")
        for i in range(50)
    ]


def _random_string(length: int) -> str:
    """Generates a random string of specified length."""
    return "".join(random.choices(string.ascii_letters, k=length))
