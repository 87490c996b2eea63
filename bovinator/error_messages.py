"""
Utility functions for describing a position in some source text.
"""

from typing import Tuple

from textwrap import indent


__all__ = [
    "offset_to_line_and_column",
    "extract_line",
    "format_error_message",
]


def offset_to_line_and_column(text: str, offset: int) -> Tuple[int, int]:
    """
    Return the (1-indexed) line and column number of a character offset.

    Offsets beyond the end of the text are clamped to point just past the
    last character.
    """
    offset = max(0, min(offset, len(text)))
    line_start = text.rfind("\n", 0, offset) + 1
    return text.count("\n", 0, offset) + 1, offset - line_start + 1


def extract_line(text: str, line: int) -> str:
    """
    Return a line of text (from :py:func:`offset_to_line_and_column`) without
    its line ending.
    """
    lines = text.split("\n")
    if 1 <= line <= len(lines):
        return lines[line - 1].rstrip("\r")
    else:
        return ""


def format_error_message(text: str, offset: int, message: str) -> str:
    """
    Generate an error message pointing at an offset into some text::

        At line 3 column 8:
            (defun foo bar)
                   ^
        Your message here...
    """
    line, column = offset_to_line_and_column(text, offset)
    snippet = extract_line(text, line).rstrip()
    pointer = (" " * (column - 1)) + "^"
    indented_snippet = indent(f"{snippet}\n{pointer}", "    ")

    return f"At line {line} column {column}:\n{indented_snippet}\n{message}"
