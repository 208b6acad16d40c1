from urllib.parse import quote_plus

import pytest

from xmrblocks.textutils import (
    calc_median,
    chunks,
    make_printable,
    parse_hex_key,
    parse_hex_keys,
    parse_post_data,
    remove_bad_chars,
    remove_hash_brackets,
    url_decode,
)

KEY_A = "ab" * 32
KEY_B = "0f" * 32


@pytest.mark.parametrize("text", ["plain", "with space", "a&b=c", "100% sure", "x+y/z"])
def test_url_decode_round_trip(text):
    assert url_decode(quote_plus(text)) == text


def test_url_decode_plus_is_space():
    assert url_decode("a+b") == "a b"


@pytest.mark.parametrize("text", ["abc%", "abc%2", "%zz"])
def test_url_decode_malformed(text):
    with pytest.raises(ValueError):
        url_decode(text)


def test_parse_post_data_fields():
    body = quote_plus("tx") + "=" + quote_plus("data 1") + "&key=" + quote_plus(KEY_A)
    assert parse_post_data(body) == {"tx": "data 1", "key": KEY_A}


def test_parse_post_data_stops_at_field_without_equals():
    assert parse_post_data("a=1&broken&b=2") == {"a": "1"}


def test_parse_post_data_bad_encoding_is_empty():
    assert parse_post_data("a=%") == {}


def test_make_printable_keeps_printable():
    assert make_printable("Monero tx") == "Monero tx"


def test_make_printable_low_controls():
    assert make_printable("\x00\x03") == "\\000\\003"


def test_make_printable_output_is_ascii_printable():
    result = make_printable(bytes(range(256)))
    assert all(0x20 <= ord(c) <= 0x7E for c in result)


def test_remove_bad_chars_default():
    assert remove_bad_chars("ab c!+/=9") == "abc+/=9"


def test_remove_bad_chars_custom_pattern():
    assert remove_bad_chars("a1b2", r"[0-9]") == "ab"


def test_remove_hash_brackets():
    assert remove_hash_brackets("<" + KEY_A + ">") == KEY_A


def test_remove_hash_brackets_empty():
    with pytest.raises(ValueError):
        remove_hash_brackets("")


def test_chunks_join_back():
    data = list(range(10))
    parts = list(chunks(data, 3))
    assert [len(p) for p in parts] == [3, 3, 3, 1]
    assert sum(parts, []) == data


def test_chunks_empty_yields_one_empty():
    assert list(chunks("", 4)) == [""]


def test_chunks_invalid_size():
    with pytest.raises(ValueError):
        list(chunks("abc", 0))


def test_calc_median_upper():
    assert calc_median([4, 1, 3, 2]) == 3
    assert calc_median([5, 1, 9]) == 5


def test_calc_median_empty():
    with pytest.raises(ValueError):
        calc_median([])


def test_parse_hex_key_round_trip():
    assert parse_hex_key(KEY_A).hex() == KEY_A
    assert len(parse_hex_key(KEY_B)) == 32


@pytest.mark.parametrize("bad", ["ab" * 31, "zz" * 32, ""])
def test_parse_hex_key_invalid(bad):
    with pytest.raises(ValueError):
        parse_hex_key(bad)


def test_parse_hex_keys():
    assert [k.hex() for k in parse_hex_keys(KEY_A + KEY_B)] == [KEY_A, KEY_B]
    assert parse_hex_keys("") == []


def test_parse_hex_keys_bad_length():
    with pytest.raises(ValueError):
        parse_hex_keys(KEY_A + "ab")