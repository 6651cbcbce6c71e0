import base64
import struct

import pytest

from conftest import encode_merges, encode_vocab
from mistral_tokenizer.codec import decode_vocabulary, decompress_merges, merge_key
from mistral_tokenizer.errors import ConfigurationError

VOCAB = ["<unk>", "<s>", "</s>", "▁", "a", "b", "ab", "▁ab"]


def test_decode_vocabulary_keeps_line_order():
    assert decode_vocabulary(encode_vocab(VOCAB)) == tuple(VOCAB)


def test_decode_vocabulary_tolerates_surrounding_whitespace():
    assert decode_vocabulary(encode_vocab(VOCAB) + "\n") == tuple(VOCAB)


def test_decode_vocabulary_rejects_bad_base64():
    with pytest.raises(ConfigurationError):
        decode_vocabulary("Invalid@@Base64")


def test_decode_vocabulary_rejects_invalid_utf8():
    with pytest.raises(ConfigurationError):
        decode_vocabulary(base64.b64encode(b"\xff\xfe").decode("ascii"))


def test_merge_ranks_follow_pair_position():
    merges = decompress_merges(encode_merges([(4, 5), (3, 6)]), VOCAB)
    assert merges == {"a b": 1, "▁ ab": 2}
    assert merge_key(VOCAB, 3, 6) == "▁ ab"


def test_merge_ids_are_little_endian():
    raw = struct.pack("<HHHH", 4, 5, 3, 6)
    assert raw[:2] == b"\x04\x00"
    merges = decompress_merges(base64.b64encode(raw).decode("ascii"), VOCAB)
    assert merges["a b"] == 1


@pytest.mark.parametrize("raw", [b"\x04", b"\x04\x00", b"\x04\x00\x05\x00\x03"])
def test_merges_with_incomplete_pairs_are_rejected(raw):
    with pytest.raises(ConfigurationError):
        decompress_merges(base64.b64encode(raw).decode("ascii"), VOCAB)


def test_merges_with_unknown_ids_are_rejected():
    with pytest.raises(ConfigurationError):
        decompress_merges(encode_merges([(4, 500)]), VOCAB)


def test_merges_reject_bad_base64():
    with pytest.raises(ConfigurationError):
        decompress_merges("not base64!", VOCAB)
