import pytest

from comandad.utils import mask_token, truncate_string


@pytest.mark.parametrize("value", ["", "token", "x" * 8])
def test_mask_token_short_values_are_fully_hidden(value):
    assert mask_token(value) == "****"


def test_mask_token_keeps_ends_of_long_values():
    value = "abcd" + "m" * 5 + "wxyz"
    masked = mask_token(value)
    assert masked.startswith(value[:4])
    assert masked.endswith(value[-4:])
    assert masked[4:-4] == "****"
    assert "m" not in masked


def test_mask_token_length_is_fixed_for_long_values():
    first = mask_token("a" * 9)
    second = mask_token("b" * 50)
    assert len(first) == len(second)
    assert len(first) == 4 + len("****") + 4


def test_truncate_string_leaves_short_text_alone():
    assert truncate_string("hello", 10) == "hello"
    assert truncate_string("hello", 5) == "hello"


def test_truncate_string_cuts_long_text():
    text = "y" * 300
    result = truncate_string(text, 200)
    assert len(result) == 200
    assert result.endswith("...")
    assert result[:-3] == text[:197]


def test_truncate_string_one_over_limit():
    result = truncate_string("abcdefghij", 9)
    assert len(result) == 9
    assert result.startswith("abcdef")
    assert result.endswith("...")