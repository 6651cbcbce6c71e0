import base64
import json
import struct
from typing import Dict, List, Sequence, Tuple

import pytest

from mistral_tokenizer.bpe import compress_ranks
from mistral_tokenizer.sentence_piece import SentencePieceBPETokenizer

SP_SPECIALS = ["<unk>", "<s>", "</s>"]
SP_PIECES = ["▁", "a", "x", "#", "b", "o", "g", "r", "e", "d"]
SP_MERGES = [
    ("#", "#"),
    ("##", "#"),
    ("▁", "▁"),
    ("▁▁", "▁▁"),
    ("b", "o"),
    ("bo", "o"),
    ("a", "x"),
    ("▁", "ax"),
    ("▁", "b"),
]

# GPT-2 pre-tokenization pattern.
PATTERN = r"""'(?:[sdmt]|ll|ve|re)| ?\p{L}+| ?\p{N}+| ?[^\s\p{L}\p{N}]+|\s+(?!\S)|\s+"""
TEKKEN_MERGED = [b"he", b"ll", b"hell", b"hello", b" w", b"or", b"ld"]
TEKKEN_NUM_SPECIAL = 20


def build_sp_vocab(pieces: Sequence[str], merges: Sequence[Tuple[str, str]], byte_tokens: bool = True) -> List[str]:
    vocab = list(SP_SPECIALS)
    if byte_tokens:
        vocab += [f"<0x{b:02X}>" for b in range(256)]
    for token in list(pieces) + [left + right for left, right in merges]:
        if token not in vocab:
            vocab.append(token)
    return vocab


def encode_vocab(vocab: Sequence[str]) -> str:
    return base64.b64encode("\n".join(vocab).encode("utf-8")).decode("ascii")


def encode_merges(pairs: Sequence[Tuple[int, int]]) -> str:
    raw = b"".join(struct.pack("<HH", left, right) for left, right in pairs)
    return base64.b64encode(raw).decode("ascii")


def sp_payloads(
    pieces: Sequence[str] = SP_PIECES,
    merges: Sequence[Tuple[str, str]] = SP_MERGES,
    byte_tokens: bool = True,
) -> Tuple[str, str, List[str]]:
    vocab = build_sp_vocab(pieces, merges, byte_tokens)
    index = {token: i for i, token in enumerate(vocab)}
    pairs = [(index[left], index[right]) for left, right in merges]
    return encode_vocab(vocab), encode_merges(pairs), vocab


def tekken_ranks() -> Dict[bytes, int]:
    ranks = {bytes([b]): b for b in range(256)}
    for i, token in enumerate(TEKKEN_MERGED):
        ranks[token] = 256 + i
    return ranks


def tekken_data(version: str = "v3", num_special: int = TEKKEN_NUM_SPECIAL, multimodal: bool = True) -> dict:
    ranks = tekken_ranks()
    data = {
        "config": {
            "pattern": PATTERN,
            "num_vocab_tokens": len(ranks),
            "default_vocab_size": num_special + len(ranks),
            "default_num_special_tokens": num_special,
            "version": version,
        },
        "bpe_ranks": compress_ranks(ranks),
    }
    if multimodal:
        data["multimodal"] = {"image_patch_size": 16, "max_image_size": 1024}
    return data


@pytest.fixture
def sp_vocab() -> List[str]:
    return sp_payloads()[2]


@pytest.fixture
def sp_tokenizer() -> SentencePieceBPETokenizer:
    vocab_payload, merges_payload, _ = sp_payloads()
    return SentencePieceBPETokenizer(vocab_payload, merges_payload)


@pytest.fixture
def data_dir(tmp_path):
    """A data directory holding sentencepiece assets for every version and a tekken file."""
    vocab_payload, merges_payload, _ = sp_payloads()
    for version in ("v1", "v2", "v3"):
        d = tmp_path / "bpe" / version
        d.mkdir(parents=True)
        (d / "vocab.bin").write_text(vocab_payload, encoding="utf-8")
        (d / "merges.bin").write_text(merges_payload, encoding="utf-8")

    tekken_dir = tmp_path / "tekken"
    tekken_dir.mkdir()
    (tekken_dir / "240718.json").write_text(json.dumps(tekken_data()), encoding="utf-8")
    return tmp_path
