"""
Decoding of the sentencepiece-style assets.

vocab.bin  : base64 of UTF-8 text, one token per line, id = line index.
merges.bin : base64 of a little-endian uint16 array, read as consecutive
             (left_id, right_id) pairs; the pair at position k has rank k + 1.
"""

import logging
import struct
from typing import Dict, Sequence, Tuple

from .errors import ConfigurationError
from .utils import decode_base64

logger = logging.getLogger(__name__)

MERGE_SEPARATOR = " "


def merge_key(vocab: Sequence[str], left_id: int, right_id: int) -> str:
    """Key of the (left, right) pair in the merge table."""
    return f"{vocab[left_id]}{MERGE_SEPARATOR}{vocab[right_id]}"


def decode_vocabulary(payload: str) -> Tuple[str, ...]:
    try:
        text = decode_base64(payload).decode("utf-8")
    except ValueError as err:
        raise ConfigurationError(f"Malformed vocabulary payload: {err}") from err
    vocab = tuple(text.split("\n"))
    logger.info("Loaded vocabulary with %d tokens", len(vocab))
    return vocab


def decompress_merges(payload: str, vocab: Sequence[str]) -> Dict[str, int]:
    """
    Build the merge table, mapping pair key -> rank.

    Args:
        payload: base64 text of the merges asset.
        vocab: the already decoded vocabulary, used to name both sides of a pair.

    Returns:
        dict of merge_key(left, right) -> rank, ranks starting at 1.
    """
    try:
        raw = decode_base64(payload)
    except ValueError as err:
        raise ConfigurationError(f"Malformed merges payload: {err}") from err

    if len(raw) % 4:
        raise ConfigurationError(
            f"Merges payload has {len(raw)} bytes, expected a multiple of 4 (pairs of uint16)"
        )

    token_ids = struct.unpack(f"<{len(raw) // 2}H", raw)
    n_vocab = len(vocab)

    merges: Dict[str, int] = {}
    for k in range(len(token_ids) // 2):
        left_id, right_id = token_ids[2 * k], token_ids[2 * k + 1]
        if left_id >= n_vocab or right_id >= n_vocab:
            raise ConfigurationError(
                f"Merge {k} references token ids ({left_id}, {right_id}) outside a vocabulary of {n_vocab}"
            )
        merges[merge_key(vocab, left_id, right_id)] = k + 1

    logger.info("Loaded %d merges", len(merges))
    return merges
