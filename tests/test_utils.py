import base64

import pytest

from mistral_tokenizer.utils import decode_base64, group_runs, hex_to_utf8_byte, is_byte_token, utf8_byte_to_hex


def test_decode_base64():
    assert decode_base64(base64.b64encode(b"Hello World").decode("ascii")) == b"Hello World"
    assert decode_base64("") == b""


def test_decode_base64_rejects_invalid_input():
    with pytest.raises(ValueError):
        decode_base64("Invalid@@Base64")


@pytest.mark.parametrize("byte, token", [(0, "<0x00>"), (32, "<0x20>"), (127, "<0x7F>"), (255, "<0xFF>")])
def test_utf8_byte_to_hex(byte, token):
    assert utf8_byte_to_hex(byte) == token
    assert hex_to_utf8_byte(token) == byte


def test_hex_to_utf8_byte_is_case_insensitive():
    assert hex_to_utf8_byte("<0XaB>") == 171
    assert hex_to_utf8_byte("<0XAB>") == 171


def test_hex_to_utf8_byte_outside_byte_range():
    assert hex_to_utf8_byte("<0x100>") == 256
    assert hex_to_utf8_byte("<0x10FFFF>") == 1114111


@pytest.mark.parametrize("token", ["", "not a hex string", "<0xG1>", "<0x>", "a<0x41>"])
def test_hex_to_utf8_byte_rejects_non_byte_tokens(token):
    assert not is_byte_token(token)
    with pytest.raises(ValueError):
        hex_to_utf8_byte(token)


def test_group_runs_keeps_order():
    runs = group_runs([1, 5, 6, 10, 11, 3], key=lambda t: t < 7)
    assert runs == [(True, [1, 5, 6]), (False, [10, 11]), (True, [3])]
    assert group_runs([], key=bool) == []
