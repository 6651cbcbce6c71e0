import base64
import binascii
from itertools import groupby
from typing import Callable, Iterable, List, Tuple, TypeVar

import regex as re

T = TypeVar("T")
K = TypeVar("K")

BYTE_TOKEN_PATTERN = re.compile(r"<0x([0-9a-f]+)>", re.IGNORECASE)


def decode_base64(encoded: str) -> bytes:
    """Strict base64 decoding; surrounding whitespace is ignored."""
    try:
        return base64.b64decode(encoded.strip(), validate=True)
    except binascii.Error as err:
        raise ValueError(f"Invalid base64 payload: {err}") from err


def utf8_byte_to_hex(c: int) -> str:
    """Name of the byte-fallback token for a single byte, e.g. 10 -> '<0x0A>'."""
    return f"<0x{c:02X}>"


def hex_to_utf8_byte(token: str) -> int:
    m = BYTE_TOKEN_PATTERN.fullmatch(token)
    if m is None:
        raise ValueError(f"Not a byte token: {token!r}")
    return int(m.group(1), 16)


def is_byte_token(token: str) -> bool:
    return BYTE_TOKEN_PATTERN.fullmatch(token) is not None


def group_runs(items: Iterable[T], key: Callable[[T], K]) -> List[Tuple[K, List[T]]]:
    """Split items into maximal contiguous runs sharing the same key, in order."""
    return [(k, list(run)) for k, run in groupby(items, key=key)]
