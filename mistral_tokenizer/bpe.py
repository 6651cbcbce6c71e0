"""
Byte-level BPE on tiktoken, plus the compressed rank table format.

Rank tables are stored compressed: one line per run of consecutive ranks,

    ! <offset> <base64 token> <base64 token> ...

where the i-th token on a line has rank offset + i.
"""

import base64
from typing import Dict, Iterable, List, Tuple

import tiktoken

from .utils import decode_base64


def load_compressed_ranks(bpe_ranks: str) -> Dict[bytes, int]:
    """
    Expand a compressed rank table.

    Raises:
        ValueError: on a malformed line or token.
    """
    ranks: Dict[bytes, int] = {}
    for lineno, line in enumerate(bpe_ranks.split("\n"), start=1):
        if not line.strip():
            continue
        marker, offset_str, *tokens = line.split(" ")
        if marker != "!":
            raise ValueError(f"Rank table line {lineno} does not start with '!'")
        offset = int(offset_str)
        for i, token in enumerate(tokens):
            ranks[decode_base64(token)] = offset + i
    return ranks


def compress_ranks(mergeable_ranks: Dict[bytes, int]) -> str:
    """
    Inverse of load_compressed_ranks, checked by expanding the result again.

    Raises:
        ValueError: if the compressed table does not expand to the input.
    """
    runs: List[Tuple[int, List[str]]] = []
    for token, rank in sorted(mergeable_ranks.items(), key=lambda kv: kv[1]):
        encoded = base64.b64encode(token).decode("ascii")
        if runs and runs[-1][0] + len(runs[-1][1]) == rank:
            runs[-1][1].append(encoded)
        else:
            runs.append((rank, [encoded]))

    compressed = "\n".join(f"! {offset} {' '.join(tokens)}" for offset, tokens in runs)

    if load_compressed_ranks(compressed) != mergeable_ranks:
        raise ValueError("Invalid compression")
    return compressed


class BytePairEncoding:
    """
    tiktoken encoding built from a segmentation pattern and a rank table.
    Token ids are the ranks themselves; no special tokens are registered.
    """

    def __init__(self, pattern: str, mergeable_ranks: Dict[bytes, int]) -> None:
        """
        Args:
            pattern: pre-tokenization regex (supports \\p{..} classes).
            mergeable_ranks: token bytes -> rank; must contain every single byte.

        Raises:
            ValueError: on an invalid pattern or an incomplete rank table.
        """
        missing = [b for b in range(256) if bytes([b]) not in mergeable_ranks]
        if missing:
            raise ValueError(f"Rank table lacks {len(missing)} single-byte tokens, e.g. {missing[0]}")

        self._ranks = dict(mergeable_ranks)
        self._decoder: Dict[int, bytes] = {rank: token for token, rank in self._ranks.items()}
        if len(self._decoder) != len(self._ranks):
            raise ValueError("Rank table assigns the same rank to several tokens")

        try:
            self._encoding = tiktoken.Encoding(
                name="tekken",
                pat_str=pattern,
                mergeable_ranks=self._ranks,
                special_tokens={},
            )
        except ValueError as err:
            raise ValueError(f"Invalid segmentation pattern: {err}") from err

    @classmethod
    def from_compressed(cls, pattern: str, bpe_ranks: str) -> "BytePairEncoding":
        return cls(pattern, load_compressed_ranks(bpe_ranks))

    @property
    def n_vocab(self) -> int:
        return len(self._ranks)

    def encode(self, text: str) -> List[int]:
        return self._encoding.encode_ordinary(text)

    def decode_bytes(self, ids: Iterable[int]) -> bytes:
        ids = list(ids)
        for t in ids:
            if t not in self._decoder:
                raise ValueError(f"Unknown token id {t}")
        return self._encoding.decode_bytes(ids)

    def decode(self, ids: Iterable[int]) -> str:
        return self.decode_bytes(ids).decode("utf-8", errors="replace")
