"""
Helpers for working with semantic tokens.

A semantic token is the value produced by a grammar action: an ordinary
Python tuple whose contents are chosen by the grammar, except that the final
two fields are always the ``start`` and ``end`` character offsets of the
construct in the source text. For example a grammar might produce::

    ("foo", "function", (11, 16), 0, 17)

The engine never looks inside a semantic token other than to read or strip
these trailing positions.
"""

from typing import Any, Optional, Tuple


__all__ = [
    "SemanticToken",
    "MalformedTokenError",
    "token_start",
    "token_end",
    "token_bounds",
    "strip_bounds",
    "with_bounds",
    "check_semantic_token",
]


SemanticToken = Tuple[Any, ...]


class MalformedTokenError(Exception):
    """
    Thrown when a grammar action produces a value which is not a well-formed
    semantic token.
    """


def token_start(token: SemanticToken) -> int:
    """The start offset of a semantic token."""
    start: int = token[-2]
    return start


def token_end(token: SemanticToken) -> int:
    """The end offset of a semantic token."""
    end: int = token[-1]
    return end


def token_bounds(token: SemanticToken) -> Tuple[int, int]:
    return (token[-2], token[-1])


def strip_bounds(token: SemanticToken) -> SemanticToken:
    """Return the payload of a semantic token, without its positions."""
    return token[:-2]


def with_bounds(payload: SemanticToken, start: int, end: int) -> SemanticToken:
    return tuple(payload) + (start, end)


def check_semantic_token(
    token: Any, text_end: Optional[int] = None, source: str = "action"
) -> SemanticToken:
    """
    Check that ``token`` is a tuple ending in a valid ``(start, end)`` pair,
    returning it unchanged or raising :py:exc:`MalformedTokenError`.

    Parameters
    ----------
    token : tuple
        The value to check.
    text_end : int or None
        If given, ``end`` must not lie beyond this offset.
    source : str
        Describes where the value came from, for the error message.
    """
    if not isinstance(token, tuple) or len(token) < 2:
        raise MalformedTokenError(
            f"{source} returned {token!r}; expected a tuple ending in (start, end)"
        )
    start, end = token[-2], token[-1]
    if (
        not isinstance(start, int)
        or not isinstance(end, int)
        or isinstance(start, bool)
        or isinstance(end, bool)
    ):
        raise MalformedTokenError(
            f"{source} returned {token!r}; final two fields must be offsets"
        )
    if not 0 <= start <= end or (text_end is not None and end > text_end):
        raise MalformedTokenError(
            f"{source} returned {token!r}; invalid span ({start}, {end})"
        )
    return token
