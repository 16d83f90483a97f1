"""Unit tests for transport sender-id parsing."""

import pytest

from repbot.bot import parse_sender_id


@pytest.mark.parametrize(
    "raw, expected",
    [
        (123456, 123456),
        ("5511999990000", 5511999990000),
        (" 42 ", 42),
    ],
)
def test_valid_ids(raw, expected):
    assert parse_sender_id(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "12a", "-5", 0, True, 3.5])
def test_invalid_ids_dropped(raw):
    assert parse_sender_id(raw) is None
