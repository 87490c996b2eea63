r"""
A syntax-table driven lexer which turns source text into a flat stream of
:py:class:`LexToken`\ s.

The lexer scans strictly left to right. At each position the first of the
following which applies determines the token produced:

* whitespace (skipped, or a ``newline`` token for line breaks when enabled),
* comment starters (the whole comment becomes one ``comment`` token),
* caller supplied :py:class:`LexExtension`\ s, in order,
* symbol constituents (letters, digits and :py:attr:`SyntaxTable.symbol_chars`),
* escape characters (``charquote``, covering the escaped character too),
* opening brackets,
* closing brackets,
* string quotes (the whole string becomes one ``string`` token),
* punctuation characters (one ``punctuation`` token per character).

Anything else is a :py:exc:`LexError`.

Brackets are emitted as individual ``open-paren`` and ``close-paren`` tokens
until the nesting depth passed to :py:meth:`Lexer.lex` is reached. Deeper
bracketed groups are emitted as a single opaque ``semantic-list`` token whose
interior may be lexed later on demand.
"""

import logging
import re

from enum import Enum

from dataclasses import dataclass, field

from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Mapping,
    Match,
    Optional,
    Pattern,
    Sequence,
    Tuple,
    Union,
)

from bovinator.error_messages import format_error_message


__all__ = [
    "TokenKind",
    "Kind",
    "normalize_kind",
    "kind_name",
    "LexToken",
    "TokenStream",
    "SyntaxTable",
    "C_SYNTAX",
    "LISP_SYNTAX",
    "LexExtension",
    "LexError",
    "Lexer",
    "lex",
]


logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    """The kinds of lexical token produced by the built-in lexer rules."""

    symbol = "symbol"
    punctuation = "punctuation"
    open_paren = "open-paren"
    close_paren = "close-paren"
    semantic_list = "semantic-list"
    string = "string"
    comment = "comment"
    charquote = "charquote"
    newline = "newline"


Kind = Union[TokenKind, str]
"""
A token kind: either a :py:class:`TokenKind` or the name of a custom kind
produced by a :py:class:`LexExtension` or keyword table.
"""


def normalize_kind(kind: Kind) -> Kind:
    """
    Return the :py:class:`TokenKind` named by ``kind`` if there is one,
    otherwise ``kind`` unchanged.
    """
    try:
        return TokenKind(kind)
    except ValueError:
        return kind


def kind_name(kind: Kind) -> str:
    """The plain string name of a token kind."""
    if isinstance(kind, TokenKind):
        return kind.value
    else:
        return kind


@dataclass(frozen=True)
class LexToken:
    """A single lexical token."""

    kind: Kind
    start: int
    """The offset of the first character of the token."""

    end: int
    """The offset just beyond the last character of the token."""

    def __init__(self, kind: Kind, start: int, end: int) -> None:
        object.__setattr__(self, "kind", normalize_kind(kind))
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def bounds(self) -> Tuple[int, int]:
        return (self.start, self.end)

    def text(self, source: str) -> str:
        """The text of this token within the source it was lexed from."""
        return source[self.start : self.end]


@dataclass(frozen=True)
class TokenStream:
    """
    An immutable cursor into a sequence of lexical tokens.

    Reading from a stream never modifies it: :py:meth:`next_token` and
    :py:meth:`advance` return new streams sharing the same token tuple. To
    backtrack, simply keep hold of an earlier stream.
    """

    text: str = field(repr=False)
    """The source text the tokens were lexed from."""

    tokens: Tuple[LexToken, ...]

    start: int
    """Offset of the start of the lexed range."""

    end: int
    """Offset just beyond the end of the lexed range."""

    index: int = 0
    """Index of the next unread token in :py:attr:`tokens`."""

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    @property
    def remaining(self) -> Tuple[LexToken, ...]:
        return self.tokens[self.index :]

    @property
    def offset(self) -> int:
        """
        The start of the next non-comment token, or the end of the lexed range
        if there is none.
        """
        token, _rest = self.next_token()
        return token.start if token is not None else self.end

    def peek(self) -> Optional[LexToken]:
        """The next token (including comments), or None at the end."""
        return None if self.at_end else self.tokens[self.index]

    def advance(self, count: int = 1) -> "TokenStream":
        index = min(self.index + count, len(self.tokens))
        return TokenStream(self.text, self.tokens, self.start, self.end, index)

    def next_token(
        self, skip_comments: bool = True
    ) -> Tuple[Optional[LexToken], "TokenStream"]:
        """
        Read the next token, returning it (or None at the end of the stream)
        along with the stream following it. Comment tokens are passed over
        unless ``skip_comments`` is False.
        """
        index = self.index
        while index < len(self.tokens):
            token = self.tokens[index]
            index += 1
            if skip_comments and token.kind == TokenKind.comment:
                continue
            return token, TokenStream(self.text, self.tokens, self.start, self.end, index)
        return None, TokenStream(self.text, self.tokens, self.start, self.end, index)


@dataclass(frozen=True)
class SyntaxTable:
    """
    The character classes of a source language.

    Parameters
    ----------
    symbol_chars : str
        Characters which, in addition to letters and digits, may appear in
        symbols.
    punctuation : str
        Characters lexed as single-character punctuation tokens.
    parens : ((opener, closer), ...)
        Matching bracket pairs.
    string_quotes : str
        Characters which start (and end) a string.
    escape_chars : str
        Characters which escape the following character, both in strings and
        in ordinary text.
    comments : ((starter, ender), ...)
        Comment delimiters. An ender of ``"\n"`` makes a line comment which
        also ends at the end of the text.
    whitespace : str
        Characters which separate tokens.
    """

    symbol_chars: str = "_"
    punctuation: str = "!#$%&*+,-./:;<=>?@^`|~"
    parens: Tuple[Tuple[str, str], ...] = (("(", ")"), ("[", "]"), ("{", "}"))
    string_quotes: str = "\"'"
    escape_chars: str = "\\"
    comments: Tuple[Tuple[str, str], ...] = (("/*", "*/"), ("//", "\n"))
    whitespace: str = " \t\r\n\f\v"

    def is_symbol_char(self, char: str) -> bool:
        return char.isalnum() or char in self.symbol_chars


C_SYNTAX = SyntaxTable()
"""Syntax for C-like languages. The default."""

LISP_SYNTAX = SyntaxTable(
    symbol_chars="-_+*/<>=!?$%&:~^",
    punctuation="'`,@#.",
    string_quotes='"',
    comments=((";", "\n"),),
)
"""Syntax for Lisp-like languages."""


LexHandler = Callable[[str, Match], Optional[LexToken]]


@dataclass(frozen=True)
class LexExtension:
    """
    A caller-defined lexical rule, tried after whitespace and comments but
    before the other built-in rules.

    When :py:attr:`pattern` matches (non-emptily) at the current position the
    :py:attr:`handler` is called with the source text and the match object.
    It may return a :py:class:`LexToken` (typically of a custom kind) or None
    to emit nothing. Lexing resumes after the match, or after the returned
    token if that extends further. A handler of None simply skips the
    matched text.
    """

    pattern: Pattern[str]
    handler: Optional[LexHandler] = None

    def __init__(
        self,
        pattern: Union[Pattern[str], str],
        handler: Optional[LexHandler] = None,
    ) -> None:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)

        object.__setattr__(self, "pattern", pattern)
        object.__setattr__(self, "handler", handler)

    @classmethod
    def token(cls, pattern: Union[Pattern[str], str], kind: Kind) -> "LexExtension":
        """An extension which emits a token of ``kind`` for every match."""

        def handler(text: str, match: Match) -> Optional[LexToken]:
            return LexToken(kind, match.start(), match.end())

        return cls(pattern, handler)


class LexError(Exception):
    """Thrown when the lexer encounters text it cannot tokenize."""

    def __init__(self, offset: int, message: str, text: str = "") -> None:
        super().__init__()
        self.offset = offset
        self.message = message
        self.text = text

    def __str__(self) -> str:
        return format_error_message(self.text, self.offset, self.message)


class Lexer:
    """
    A lexer for a particular source language.

    Parameters
    ----------
    syntax : :py:class:`SyntaxTable`
        Character classes of the language. Defaults to :py:data:`C_SYNTAX`.
    extensions : [:py:class:`LexExtension`, ...]
        Extra lexical rules, tried in order after whitespace and comments
        but before the other built-in rules.
    keywords : {text: kind, ...}
        Symbols whose text appears here are given the corresponding kind
        instead of ``symbol``.
    ignore_comments : bool
        If True, comments are skipped rather than emitted as ``comment``
        tokens.
    newlines : bool
        If True, line breaks are emitted as ``newline`` tokens.
    """

    def __init__(
        self,
        syntax: SyntaxTable = C_SYNTAX,
        extensions: Sequence[LexExtension] = (),
        keywords: Optional[Mapping[str, Kind]] = None,
        ignore_comments: bool = False,
        newlines: bool = False,
    ) -> None:
        self.syntax = syntax
        self.extensions = list(extensions)
        self.keywords: Dict[str, Kind] = {
            text: normalize_kind(kind) for text, kind in (keywords or {}).items()
        }
        self.ignore_comments = ignore_comments
        self.newlines = newlines

        self._closers: Dict[str, str] = dict(syntax.parens)
        self._close_chars: FrozenSet[str] = frozenset(self._closers.values())
        # Longest first so that, e.g., "//" is tried before "/".
        self._comments: List[Tuple[str, str]] = sorted(
            syntax.comments, key=lambda delimiters: -len(delimiters[0])
        )

    def lex(
        self,
        text: str,
        start: int = 0,
        end: Optional[int] = None,
        depth: Optional[int] = 0,
    ) -> TokenStream:
        """
        Lex ``text[start:end]`` into a :py:class:`TokenStream`.

        Parameters
        ----------
        depth : int or None
            The number of bracket nesting levels to lex into. Brackets nested
            any deeper become ``semantic-list`` tokens. None means unlimited.
        """
        if end is None:
            end = len(text)
        if not 0 <= start <= end <= len(text):
            raise ValueError(f"Invalid range ({start}, {end}) for text of length {len(text)}")

        tokens = tuple(self.iter_tokens(text, start, end, depth))
        logger.debug(
            "Lexed %d tokens from offsets %d-%d (depth %s)", len(tokens), start, end, depth
        )
        return TokenStream(text, tokens, start, end)

    def lex_span(
        self,
        text: str,
        span: Tuple[int, int],
        depth: Optional[int] = 0,
        interior: bool = True,
    ) -> TokenStream:
        """
        Lex the text covered by a ``semantic-list`` span. When ``interior`` is
        True the enclosing brackets are excluded.
        """
        start, end = span
        if interior and end - start >= 2:
            start, end = start + 1, end - 1
        return self.lex(text, start, end, depth)

    def iter_tokens(
        self, text: str, start: int, end: int, depth: Optional[int] = 0
    ) -> Iterator[LexToken]:
        """Generate the tokens in ``text[start:end]``. See :py:meth:`lex`."""
        syntax = self.syntax
        offset = start
        current_depth = 0
        while offset < end:
            char = text[offset]

            if char in syntax.whitespace:
                if char == "\n" and self.newlines:
                    yield LexToken(TokenKind.newline, offset, offset + 1)
                offset += 1
                continue

            comment = self._match_comment(text, offset, end)
            if comment is not None:
                comment_end = self._skip_comment(text, offset, end, *comment)
                if not self.ignore_comments:
                    yield LexToken(TokenKind.comment, offset, comment_end)
                offset = comment_end
                continue

            extended = self._apply_extensions(text, offset, end)
            if extended is not None:
                token, offset = extended
                if token is not None:
                    yield token
                continue

            if syntax.is_symbol_char(char):
                token_end = offset + 1
                while token_end < end and syntax.is_symbol_char(text[token_end]):
                    token_end += 1
                kind = self.keywords.get(text[offset:token_end], TokenKind.symbol)
                yield LexToken(kind, offset, token_end)
                offset = token_end
            elif char in syntax.escape_chars:
                token_end = min(offset + 2, end)
                yield LexToken(TokenKind.charquote, offset, token_end)
                offset = token_end
            elif char in self._closers:
                if depth is None or current_depth < depth:
                    current_depth += 1
                    yield LexToken(TokenKind.open_paren, offset, offset + 1)
                    offset += 1
                else:
                    group_end = self._skip_group(text, offset, end)
                    yield LexToken(TokenKind.semantic_list, offset, group_end)
                    offset = group_end
            elif char in self._close_chars:
                current_depth = max(0, current_depth - 1)
                yield LexToken(TokenKind.close_paren, offset, offset + 1)
                offset += 1
            elif char in syntax.string_quotes:
                string_end = self._skip_string(text, offset, end)
                yield LexToken(TokenKind.string, offset, string_end)
                offset = string_end
            elif char in syntax.punctuation:
                yield LexToken(TokenKind.punctuation, offset, offset + 1)
                offset += 1
            else:
                raise LexError(offset, f"Unrecognised character {char!r}", text)

    def _apply_extensions(
        self, text: str, offset: int, end: int
    ) -> Optional[Tuple[Optional[LexToken], int]]:
        """
        Try each extension at ``offset``. Returns None if none apply,
        otherwise the (possibly None) token produced and the offset to resume
        lexing from.
        """
        for extension in self.extensions:
            match = extension.pattern.match(text, offset, end)
            if match is None or match.end() <= offset:
                continue

            token = None
            if extension.handler is not None:
                token = extension.handler(text, match)

            resume = match.end()
            if token is not None:
                resume = max(resume, token.end)
            return token, resume

        return None

    def _match_comment(
        self, text: str, offset: int, end: int
    ) -> Optional[Tuple[str, str]]:
        for starter, ender in self._comments:
            if text.startswith(starter, offset, end):
                return (starter, ender)
        return None

    def _skip_comment(
        self, text: str, offset: int, end: int, starter: str, ender: str
    ) -> int:
        """Return the offset just beyond the comment starting at ``offset``."""
        close = text.find(ender, offset + len(starter), end)
        if ender == "\n":
            # Line comments stop before the newline (or at the end of the text)
            return end if close < 0 else close
        elif close < 0:
            raise LexError(offset, f"Unterminated comment (expected {ender!r})", text)
        else:
            return close + len(ender)

    def _skip_string(self, text: str, offset: int, end: int) -> int:
        """Return the offset just beyond the string starting at ``offset``."""
        quote = text[offset]
        index = offset + 1
        while index < end:
            char = text[index]
            if char in self.syntax.escape_chars:
                index += 2
            elif char == quote:
                return index + 1
            else:
                index += 1
        raise LexError(offset, f"Unterminated string (expected {quote!r})", text)

    def _skip_group(self, text: str, offset: int, end: int) -> int:
        """
        Return the offset just beyond the balanced bracketed group starting at
        ``offset``.
        """
        syntax = self.syntax
        expected = [self._closers[text[offset]]]
        index = offset + 1
        while index < end:
            char = text[index]
            if char in syntax.escape_chars:
                index += 2
            elif char in self._closers:
                expected.append(self._closers[char])
                index += 1
            elif char in self._close_chars:
                closer = expected.pop()
                if char != closer:
                    raise LexError(
                        index, f"Mismatched {char!r} (expected {closer!r})", text
                    )
                index += 1
                if not expected:
                    return index
            elif char in syntax.string_quotes:
                index = self._skip_string(text, index, end)
            else:
                comment = self._match_comment(text, index, end)
                if comment is not None:
                    index = self._skip_comment(text, index, end, *comment)
                else:
                    index += 1
        raise LexError(offset, f"Unbalanced {text[offset]!r}", text)


_default_lexer = Lexer()


def lex(
    text: str, start: int = 0, end: Optional[int] = None, depth: Optional[int] = 0
) -> TokenStream:
    """Lex ``text[start:end]`` with the default (C-like) :py:class:`Lexer`."""
    return _default_lexer.lex(text, start, end, depth)
