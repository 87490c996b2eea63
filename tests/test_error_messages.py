import pytest  # type: ignore

from bovinator.error_messages import (
    offset_to_line_and_column,
    extract_line,
    format_error_message,
)


@pytest.mark.parametrize(
    "string, offset, exp_line, exp_column",
    [
        # Special case: Empty string
        ("", 0, 1, 1),
        # Special case: Beyond end of string (clamped)
        ("foobar", 111, 1, 7),
        ("foobar\n", 111, 2, 1),
        ("foo\nbar", 111, 2, 4),
        # Special case: Negative offset (clamped)
        ("foobar", -5, 1, 1),
        # Single line
        ("foobar", 0, 1, 1),
        ("foobar", 3, 1, 4),
        ("foobar", 5, 1, 6),
        # Multiple lines
        ("foo\nbar", 0, 1, 1),
        ("foo\nbar", 2, 1, 3),
        ("foo\nbar", 3, 1, 4),  # The newline
        ("foo\nbar", 4, 2, 1),
        ("foo\nbar", 6, 2, 3),
        ("a\n\nb", 3, 3, 1),
    ],
)
def test_offset_to_line_and_column(
    string: str, offset: int, exp_line: int, exp_column: int
) -> None:
    assert offset_to_line_and_column(string, offset) == (exp_line, exp_column)


@pytest.mark.parametrize(
    "string, line, exp",
    [
        # Special case: Empty string
        ("", 1, ""),
        # Special case: Out of range
        ("foo", 0, ""),
        ("foo", 2, ""),
        # Single line (no line ending)
        ("foo", 1, "foo"),
        # Single line (with line ending)
        ("foo\n", 1, "foo"),
        ("foo\r\n", 1, "foo"),
        # Multiple lines
        ("foo\nbar\n", 1, "foo"),
        ("foo\nbar\n", 2, "bar"),
        ("foo\r\nbar\r\n", 2, "bar"),
        ("foo\n\nbar", 2, ""),
    ],
)
def test_extract_line(string: str, line: int, exp: str) -> None:
    assert extract_line(string, line) == exp


def test_format_error_message() -> None:
    assert format_error_message("foo\nbar baz   \n", 8, "Some message") == (
        "At line 2 column 5:\n"
        "    bar baz\n"
        "        ^\n"
        "Some message"
    )


def test_format_error_message_at_end_of_text() -> None:
    assert format_error_message("(foo", 4, "Unbalanced") == (
        "At line 1 column 5:\n" "    (foo\n" "        ^\n" "Unbalanced"
    )
