"""
Pytest configuration and shared fixtures for foa tests.

Provides immutable document fixtures and a chunking byte source used to
exercise the decoder's refill and growth paths.
"""

from dataclasses import dataclass
from typing import TypeAlias

import pytest

from foa import EntityType

Triple: TypeAlias = tuple[str | None, str, EntityType]

START_OBJECT = EntityType.START_OBJECT
START_ARRAY = EntityType.START_ARRAY
END_OBJECT = EntityType.END_OBJECT
END_ARRAY = EntityType.END_ARRAY
DATA = EntityType.DATA


@dataclass(frozen=True)
class FoaTestCase:
    """
    Immutable container for FOA test case data.

    Holds an encoded document and the (name, data, kind) triples it must
    decode to, plus the source line of each entity.
    """

    description: str
    input_data: bytes
    expected: tuple[Triple, ...]
    lines: tuple[int, ...] = ()


class ChunkedSource:
    """
    Byte source serving a document in pieces of at most ``chunk_size``.

    Records the size of every region the decoder offered, so tests can see
    how the scan buffer grew.
    """

    def __init__(self, data: bytes, chunk_size: int) -> None:
        self.data = data
        self.chunk_size = chunk_size
        self.pos = 0
        self.regions: list[int] = []

    def fill(self, region: memoryview) -> int:
        self.regions.append(len(region))
        count = min(self.chunk_size, len(region), len(self.data) - self.pos)
        region[:count] = self.data[self.pos : self.pos + count]
        self.pos += count
        return count


@pytest.fixture
def foa_documents() -> list[FoaTestCase]:
    """
    Provides FOA documents covering every line shape the decoder accepts.
    """
    return [
        FoaTestCase(
            "named object",
            b"obj = (\nname = adam\nage = 24\n)\n",
            (
                ("obj", "(", START_OBJECT),
                ("name", "adam", DATA),
                ("age", "24", DATA),
                (None, ")", END_OBJECT),
            ),
            (1, 2, 3, 4),
        ),
        FoaTestCase(
            "anonymous object",
            b"(\nadam\n24\n)\n",
            (
                (None, "(", START_OBJECT),
                (None, "adam", DATA),
                (None, "24", DATA),
                (None, ")", END_OBJECT),
            ),
            (1, 2, 3, 4),
        ),
        FoaTestCase(
            "array of objects",
            b"arr = [\nobj1 = (\nname = adam\n)\nobj2 = (\nname = eve\n)\n]\n",
            (
                ("arr", "[", START_ARRAY),
                ("obj1", "(", START_OBJECT),
                ("name", "adam", DATA),
                (None, ")", END_OBJECT),
                ("obj2", "(", START_OBJECT),
                ("name", "eve", DATA),
                (None, ")", END_OBJECT),
                (None, "]", END_ARRAY),
            ),
            (1, 2, 3, 4, 5, 6, 7, 8),
        ),
        FoaTestCase(
            "blank lines",
            b"\n\n(\n\n\nadam\n\n)\n\n",
            (
                (None, "(", START_OBJECT),
                (None, "adam", DATA),
                (None, ")", END_OBJECT),
            ),
            (1, 2, 3),
        ),
        FoaTestCase(
            "surrounding whitespace",
            b"  name   =   adam  \r\n\t24\t\n",
            (("name", "adam", DATA), (None, "24", DATA)),
            (1, 2),
        ),
        FoaTestCase(
            "escaped values",
            b"a%28b%5Bc%5Dd%29e%3Df\nname = a%28b%5Bc%5Dd%29e%3Df\n",
            (
                (None, "a(b[c]d)e=f", DATA),
                ("name", "a(b[c]d)e=f", DATA),
            ),
            (1, 2),
        ),
        FoaTestCase(
            "empty values",
            b"name =\n = value\n",
            (("name", "", DATA), ("", "value", DATA)),
            (1, 2),
        ),
        FoaTestCase(
            "separator in value",
            b"expr = a = b\n",
            (("expr", "a = b", DATA),),
            (1,),
        ),
        FoaTestCase(
            "non-ascii text",
            "navn = Åse\nby = Tromsø\n".encode(),
            (("navn", "Åse", DATA), ("by", "Tromsø", DATA)),
            (1, 2),
        ),
    ]
