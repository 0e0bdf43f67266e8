"""Tests for formatting utilities."""

import pytest

from dirserve.utils.formatters import content_disposition, format_bytes


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, "0 B"),
        (1023, "1023 B"),
        (1024, "1.00 KiB"),
        (1536, "1.50 KiB"),
        (5 * 1024**3, "5.00 GiB"),
        (-1, "0 B"),
    ],
)
def test_format_bytes(value, expected):
    assert format_bytes(value) == expected


def test_format_bytes_decimal_places():
    assert format_bytes(1536, decimal_places=1) == "1.5 KiB"


def test_content_disposition_ascii():
    assert content_disposition("report.zip") == 'attachment; filename="report.zip"'


def test_content_disposition_non_ascii():
    value = content_disposition("résumé.pdf")
    assert value.startswith('attachment; filename="r_sum_.pdf"')
    assert value.endswith("filename*=UTF-8''r%C3%A9sum%C3%A9.pdf")


def test_content_disposition_control_characters():
    """Control characters never reach the quoted fallback."""
    value = content_disposition("a\nb\r.txt")
    assert "\n" not in value and "\r" not in value
    assert value == "attachment; filename=\"a_b_.txt\"; filename*=UTF-8''a%0Ab%0D.txt"


def test_content_disposition_quotes_and_backslashes():
    value = content_disposition('say "hi"\\.txt')
    assert value.startswith('attachment; filename="say _hi__.txt"; filename*=')
