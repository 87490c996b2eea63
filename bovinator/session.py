r"""
The toplevel parse driver.

A :py:class:`ParserSession` binds together a :py:class:`Grammar`, a
:py:class:`Lexer` and the cached result of the last complete parse. A typical
use looks like::

    >>> session = ParserSession(grammar)
    >>> session.parse_all(text)
    [("foo", "function", (11, 16), 0, 17)]

The start rule of the grammar is matched repeatedly against the lexed text
until every token has been consumed. Each match contributes its semantic
token (or, if an expansion hook is given, whatever tokens the hook produces
from it) to the result. If the start rule fails to match a
:py:exc:`ParseError` is thrown.

Grammar actions may call :py:meth:`ParserSession.expand` and
:py:meth:`ParserSession.expand_full` to parse the interior of a
``semantic-list`` token on demand.
"""

import logging

from dataclasses import dataclass

from typing import (
    Callable,
    Iterable,
    List,
    Optional,
    Tuple,
)

from bovinator.error_messages import format_error_message
from bovinator.lexer import Lexer, TokenKind, TokenStream
from bovinator.grammar import Grammar, GrammarNotWellFormedError
from bovinator.matcher import DEFAULT_MAX_DEPTH, Matcher
from bovinator.tokens import SemanticToken, check_semantic_token


__all__ = [
    "ExpandHook",
    "ProgressHook",
    "ParseCache",
    "ParseError",
    "ParserSession",
    "parse_all",
]


logger = logging.getLogger(__name__)


ExpandHook = Callable[[SemanticToken], Iterable[SemanticToken]]
"""Replaces each toplevel semantic token with zero or more tokens."""

ProgressHook = Callable[[int], None]
"""Called with the percentage of tokens consumed after each toplevel match."""


@dataclass(frozen=True)
class ParseCache:
    """The result of the most recent complete parse."""

    tokens: Tuple[SemanticToken, ...]

    text_end: int
    """The length of the text which was parsed."""

    skip_comments: bool = True
    """Whether toplevel comments were skipped by the parse."""

    def is_valid_for(self, text: str, skip_comments: bool = True) -> bool:
        return self.text_end == len(text) and self.skip_comments == skip_comments


class ParseError(Exception):
    """
    Thrown when a nonterminal fails to match at a point where a match is
    required.

    Parameters
    ----------
    offset : int
        The offset in the text of the token which could not be matched.
    nonterminal : str
        The name of the nonterminal which failed to match.
    text : str
        The text being parsed (used for the error message).
    message : str or None
        Overrides the default description of the failure.
    """

    def __init__(
        self,
        offset: int,
        nonterminal: str,
        text: str = "",
        message: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.offset = offset
        self.nonterminal = nonterminal
        self.text = text
        self.message = message

    def explain(self) -> str:
        """A human-readable description of the failure."""
        if self.message is not None:
            return self.message
        else:
            return "Expected {}".format(self.nonterminal)

    def __str__(self) -> str:
        return format_error_message(self.text, self.offset, self.explain())


class ParserSession:
    """
    A parser for one language, with a cache of the most recent parse.

    Parameters
    ----------
    grammar : :py:class:`Grammar`
        The grammar to parse with. Must be well formed.
    lexer : :py:class:`Lexer`
        The lexer used to tokenize text. Defaults to a C-like lexer.
    depth : int or None
        The bracket nesting depth to lex toplevel text to.
    skip_comments : bool
        Default for :py:meth:`parse_all`. If True, comment tokens between
        toplevel constructs are passed over.
    expand_hook : callable or None
        If given, called with each toplevel semantic token and returns the
        tokens to add to the result in its place.
    progress_hook : callable or None
        If given, called with a percentage after each toplevel construct.
    max_depth : int
        The maximum nesting of nonterminal matches.
    max_steps : int or None
        The maximum number of alternatives tried during a single parse.
    """

    _cache: Optional[ParseCache]

    _text: Optional[str]
    """The text being parsed, while a parse is in progress."""

    _matcher: Optional[Matcher]
    """The matcher of the parse in progress, if any."""

    def __init__(
        self,
        grammar: Grammar,
        lexer: Optional[Lexer] = None,
        depth: Optional[int] = 0,
        skip_comments: bool = True,
        expand_hook: Optional[ExpandHook] = None,
        progress_hook: Optional[ProgressHook] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_steps: Optional[int] = None,
    ) -> None:
        well_formed = grammar.is_well_formed()
        if not well_formed:
            raise GrammarNotWellFormedError(well_formed)

        self._grammar = grammar
        self.lexer = lexer if lexer is not None else Lexer()
        self.depth = depth
        self.skip_comments = skip_comments
        self.expand_hook = expand_hook
        self.progress_hook = progress_hook
        self.max_depth = max_depth
        self.max_steps = max_steps

        self._cache = None
        self._text = None
        self._matcher = None

    @property
    def grammar(self) -> Grammar:
        return self._grammar

    @property
    def cache(self) -> Optional[ParseCache]:
        """The cached result of the last successful parse, if any."""
        return self._cache

    def invalidate(self) -> None:
        """Discard the cached parse, e.g. because the text has changed."""
        logger.debug("Parse cache invalidated")
        self._cache = None

    def parse_all(
        self, text: str, skip_comments: Optional[bool] = None
    ) -> List[SemanticToken]:
        """
        Parse the whole of ``text``, returning the list of toplevel semantic
        tokens.

        If a cached parse of text of the same length (made with the same
        ``skip_comments`` setting) exists it is returned without re-parsing:
        callers must :py:meth:`invalidate` the session when the text changes.
        """
        if skip_comments is None:
            skip_comments = self.skip_comments

        if self._cache is not None and self._cache.is_valid_for(text, skip_comments):
            logger.debug("Using cached parse (%d tokens)", len(self._cache.tokens))
            return list(self._cache.tokens)

        self._cache = None
        self._text = text
        self._matcher = self._new_matcher()
        try:
            stream = self.lexer.lex(text, depth=self.depth)
            tokens = self._parse_repeatedly(
                stream,
                self._grammar.start_rule,
                skip_comments,
                expand=True,
                report_progress=True,
            )
        finally:
            self._text = None
            self._matcher = None

        self._cache = ParseCache(tuple(tokens), len(text), skip_comments)
        logger.debug("Parsed %d toplevel tokens", len(tokens))
        return list(tokens)

    def parse_stream(
        self, stream: TokenStream, nonterminal: str
    ) -> Tuple[TokenStream, Optional[SemanticToken]]:
        """
        Match ``nonterminal`` once at the start of ``stream``. Returns the
        stream following the match and the semantic token produced, or the
        unchanged stream and None if nothing matched.
        """
        match = self._current_matcher().match(stream, nonterminal)
        if match is None:
            return stream, None
        else:
            return match.stream, match.token

    def expand(
        self,
        span: Tuple[int, int],
        nonterminal: str,
        depth: Optional[int] = 0,
        interior: bool = True,
        text: Optional[str] = None,
    ) -> Optional[SemanticToken]:
        """
        Lex the text covered by ``span`` (typically the value collected for a
        ``semantic-list`` token) and match ``nonterminal`` once against it.

        Parameters
        ----------
        span : (start, end)
            The range of text to expand.
        nonterminal : str
            The rule to match.
        depth : int or None
            The bracket nesting depth to lex to.
        interior : bool
            If True, the first and last characters of the span (the
            brackets) are excluded.
        text : str or None
            The text the span refers to. Defaults to the text currently being
            parsed.

        Returns
        -------
        The semantic token produced, or None if nothing matched.
        """
        stream = self._lex_span(span, depth, interior, text)
        _stream, token = self.parse_stream(stream, nonterminal)
        logger.debug("Expanded %r in %s: %r", nonterminal, span, token)
        return token

    def expand_full(
        self,
        span: Tuple[int, int],
        nonterminal: str,
        depth: Optional[int] = 0,
        interior: bool = True,
        text: Optional[str] = None,
    ) -> List[SemanticToken]:
        """
        Like :py:meth:`expand` but matches ``nonterminal`` repeatedly until
        the whole span has been consumed, returning every token produced.
        Throws :py:exc:`ParseError` if part of the span cannot be matched.
        """
        stream = self._lex_span(span, depth, interior, text)
        tokens = self._parse_repeatedly(
            stream,
            nonterminal,
            skip_comments=True,
            expand=False,
            report_progress=False,
        )
        logger.debug("Expanded %d %r in %s", len(tokens), nonterminal, span)
        return tokens

    def _new_matcher(self) -> Matcher:
        return Matcher(
            self._grammar, max_depth=self.max_depth, max_steps=self.max_steps
        )

    def _current_matcher(self) -> Matcher:
        if self._matcher is not None:
            return self._matcher
        else:
            return self._new_matcher()

    def _lex_span(
        self,
        span: Tuple[int, int],
        depth: Optional[int],
        interior: bool,
        text: Optional[str],
    ) -> TokenStream:
        if text is None:
            text = self._text
        if text is None:
            raise RuntimeError(
                "No parse is in progress: the text to expand must be given"
            )
        return self.lexer.lex_span(text, span, depth, interior)

    def _parse_repeatedly(
        self,
        stream: TokenStream,
        nonterminal: str,
        skip_comments: bool,
        expand: bool,
        report_progress: bool,
    ) -> List[SemanticToken]:
        """
        Match ``nonterminal`` repeatedly until ``stream`` is exhausted.
        """
        matcher = self._current_matcher()
        tokens: List[SemanticToken] = []
        while not stream.at_end:
            next_token = stream.peek()
            assert next_token is not None
            if skip_comments and next_token.kind == TokenKind.comment:
                stream = stream.advance()
                continue

            match = matcher.match(stream, nonterminal)
            if match is None:
                raise ParseError(next_token.start, nonterminal, stream.text)
            if match.stream.index == stream.index:
                raise ParseError(
                    next_token.start,
                    nonterminal,
                    stream.text,
                    "{} matched without consuming any input".format(nonterminal),
                )
            stream = match.stream

            if match.token is None:
                logger.debug("%s matched but was discarded by its action", nonterminal)
            elif expand and self.expand_hook is not None:
                for token in self.expand_hook(match.token):
                    check_semantic_token(token, len(stream.text), "expand hook")
                    tokens.append(token)
            else:
                tokens.append(match.token)

            if report_progress and self.progress_hook is not None:
                self.progress_hook((100 * stream.index) // len(stream.tokens))

        return tokens


def parse_all(
    text: str,
    grammar: Grammar,
    expand_hook: Optional[ExpandHook] = None,
    skip_comments: bool = True,
    lexer: Optional[Lexer] = None,
    depth: Optional[int] = 0,
) -> List[SemanticToken]:
    """
    Parse the whole of ``text`` with a fresh :py:class:`ParserSession`. See
    :py:meth:`ParserSession.parse_all`.
    """
    session = ParserSession(
        grammar,
        lexer=lexer,
        depth=depth,
        skip_comments=skip_comments,
        expand_hook=expand_hook,
    )
    return session.parse_all(text)
