r"""
The backtracking nonterminal matcher.

Given a :py:class:`TokenStream` and the name of a nonterminal, the matcher
tries each of the nonterminal's alternatives in turn, starting each from the
same stream position. Within an alternative, items are matched left to
right: terminals consume a single (non-comment) token of the required kind
whose text must match the terminal's pattern, if any, while nonterminals
recurse. The first alternative whose items all match has its action invoked
and the result is returned. A failed alternative leaves no trace: the next
alternative simply starts from the original stream value again.

Values collected for the action are:

* the token text for terminals, except for ``semantic-list`` and ``comment``
  tokens which contribute their ``(start, end)`` span,
* the semantic token with its trailing ``(start, end)`` removed for
  nonterminals,
* a single None for an empty alternative.

The span passed to the action runs from the start of the first item which
consumed input to the end of the last. Nonterminals which matched without
consuming anything contribute a value but not a position, so the span never
stretches over the whitespace and comments before the following token. An
alternative which consumed nothing at all has an empty span at the stream's
current offset.
"""

import logging

from typing import Any, List, NamedTuple, Optional, Set, Tuple

from bovinator.lexer import TokenKind, TokenStream
from bovinator.grammar import (
    Alternative,
    Grammar,
    LeftRecursionError,
    Nonterminal,
)
from bovinator.tokens import (
    SemanticToken,
    check_semantic_token,
    strip_bounds,
    token_end,
    token_start,
)


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "RecursionLimitExceeded",
    "ParseAborted",
    "Match",
    "Matcher",
    "match_nonterminal",
]


logger = logging.getLogger(__name__)


DEFAULT_MAX_DEPTH = 200
"""The default limit on the nesting of nonterminal matches."""


class RecursionLimitExceeded(Exception):
    """Thrown when nonterminal matches are nested too deeply."""

    def __init__(self, nonterminal: str, limit: int, offset: int) -> None:
        super().__init__()
        self.nonterminal = nonterminal
        self.limit = limit
        self.offset = offset

    def __str__(self) -> str:
        return "Nesting limit of {} exceeded matching {!r} at offset {}".format(
            self.limit, self.nonterminal, self.offset
        )


class ParseAborted(Exception):
    """Thrown when a parse exceeds its budget of alternative attempts."""

    def __init__(self, steps: int) -> None:
        super().__init__()
        self.steps = steps

    def __str__(self) -> str:
        return "Parse aborted after {} steps".format(self.steps)


class Match(NamedTuple):
    """The result of successfully matching a nonterminal."""

    stream: TokenStream
    """The stream following the matched tokens."""

    token: Optional[SemanticToken]
    """The semantic token produced, or None if the action discarded it."""


class Matcher:
    """
    A backtracking matcher for a grammar.

    A single matcher may be used for any number of matches; its step count
    accumulates across them.

    Parameters
    ----------
    grammar : :py:class:`Grammar`
        The grammar whose rules are to be matched.
    max_depth : int
        The maximum nesting of nonterminal matches before
        :py:exc:`RecursionLimitExceeded` is thrown.
    max_steps : int or None
        If given, the maximum number of alternatives which may be tried
        before :py:exc:`ParseAborted` is thrown.
    """

    _grammar: Grammar
    """The :py:class:`Grammar` to be matched."""

    _depth: int
    """The current nesting of nonterminal matches."""

    _executing_rules: Set[Tuple[str, int, int, int]]
    """
    (name, range start, range end, token index) for every nonterminal being
    matched. Used to detect rules re-entered without consuming input.
    """

    def __init__(
        self,
        grammar: Grammar,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_steps: Optional[int] = None,
    ) -> None:
        self._grammar = grammar
        self.max_depth = max_depth
        self.max_steps = max_steps
        self.steps = 0
        self._depth = 0
        self._executing_rules = set()

    @property
    def grammar(self) -> Grammar:
        return self._grammar

    def match(self, stream: TokenStream, nonterminal: str) -> Optional[Match]:
        """
        Match ``nonterminal`` at the start of ``stream``.

        Returns None if no alternative matched. Otherwise returns a
        :py:class:`Match` whose token is None if the action of the matching
        alternative discarded the match.
        """
        try:
            return self._match_nonterminal(stream, nonterminal)
        except RecursionError:
            raise RecursionLimitExceeded(
                nonterminal, self._depth, stream.offset
            ) from None

    def _count_step(self) -> None:
        self.steps += 1
        if self.max_steps is not None and self.steps > self.max_steps:
            raise ParseAborted(self.steps)

    def _match_nonterminal(
        self, stream: TokenStream, name: str
    ) -> Optional[Match]:
        alternatives = self._grammar.alternatives(name)

        # Well-formedness sanity check: a rule must consume input before
        # being matched again.
        rule_instantiation = (name, stream.start, stream.end, stream.index)
        if rule_instantiation in self._executing_rules:
            raise LeftRecursionError(name)
        if self._depth >= self.max_depth:
            raise RecursionLimitExceeded(name, self.max_depth, stream.offset)

        self._executing_rules.add(rule_instantiation)
        self._depth += 1
        try:
            for alternative_index, alternative in enumerate(alternatives):
                match = self._match_alternative(stream, name, alternative)
                if match is not None:
                    logger.debug(
                        "%s: alternative %d (%s) matched tokens %d-%d",
                        name,
                        alternative_index,
                        alternative,
                        stream.index,
                        match.stream.index,
                    )
                    return match
            return None
        finally:
            self._depth -= 1
            self._executing_rules.remove(rule_instantiation)

    def _match_alternative(
        self, stream: TokenStream, name: str, alternative: Alternative
    ) -> Optional[Match]:
        self._count_step()

        if alternative.is_empty:
            offset = stream.offset
            return self._apply_action(name, alternative, [None], offset, offset, stream)

        values: List[Any] = []
        start: Optional[int] = None
        end = stream.offset
        for item in alternative.items:
            if isinstance(item, Nonterminal):
                match = self._match_nonterminal(stream, item.name)
                if match is None or match.token is None:
                    return None
                values.append(strip_bounds(match.token))
                # Matches which consumed nothing don't contribute to the span
                if match.stream.index != stream.index:
                    if start is None:
                        start = token_start(match.token)
                    end = token_end(match.token)
                stream = match.stream
            else:
                token, stream = stream.next_token(
                    skip_comments=item.kind != TokenKind.comment
                )
                if token is None or token.kind != item.kind:
                    return None
                text = token.text(stream.text)
                if not item.matches_text(text):
                    return None
                if token.kind in (TokenKind.semantic_list, TokenKind.comment):
                    values.append(token.bounds)
                else:
                    values.append(text)
                if start is None:
                    start = token.start
                end = token.end

        if start is None:
            start = end
        return self._apply_action(name, alternative, values, start, end, stream)

    def _apply_action(
        self,
        name: str,
        alternative: Alternative,
        values: List[Any],
        start: int,
        end: int,
        stream: TokenStream,
    ) -> Match:
        token: Optional[SemanticToken]
        if alternative.action is not None:
            token = alternative.action(values, start, end)
        elif alternative.is_pass_through:
            token = values[0] + (start, end)
        else:
            token = tuple(values) + (start, end)

        if token is not None:
            source = "action for {!r} ({})".format(name, alternative)
            check_semantic_token(token, len(stream.text), source)
        return Match(stream, token)


def match_nonterminal(
    stream: TokenStream,
    grammar: Grammar,
    nonterminal: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Tuple[TokenStream, Optional[SemanticToken]]:
    """
    Match ``nonterminal`` at the start of ``stream``, returning the remaining
    stream and the semantic token produced. If nothing matched (or the
    matching action discarded its result) the token is None.
    """
    match = Matcher(grammar, max_depth=max_depth).match(stream, nonterminal)
    if match is None:
        return stream, None
    else:
        return match.stream, match.token
