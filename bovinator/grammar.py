r"""
Grammar tables.

A :py:class:`Grammar` maps nonterminal names to an ordered sequence of
:py:class:`Alternative`\ s. Each alternative is a sequence of match items
(:py:class:`Terminal` or :py:class:`Nonterminal`) followed by an optional
action which builds the semantic token for a successful match. The order of
alternatives is significant: the first alternative which matches is always
the one used.
"""

import re

from dataclasses import dataclass

from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Pattern,
    Sequence,
    Set,
    Tuple,
    Union,
)

from bovinator.lexer import Kind, kind_name, normalize_kind
from bovinator.tokens import SemanticToken


__all__ = [
    "Action",
    "Terminal",
    "Nonterminal",
    "MatchItem",
    "Alternative",
    "GrammarWellFormedness",
    "WellFormed",
    "UndefinedRule",
    "LeftRecursion",
    "Grammar",
    "GrammarError",
    "UndefinedRuleError",
    "LeftRecursionError",
    "GrammarNotWellFormedError",
]


Action = Callable[[List[Any], int, int], Optional[SemanticToken]]
"""
A grammar action. Called with the list of collected values, the start and
the end offset of the match; returns a semantic token or None to discard the
match.
"""


@dataclass(frozen=True)
class Terminal:
    """
    Match a single lexical token of the given kind. If a pattern is given the
    token's text must match it in its entirety. Strings are compiled as
    regular expressions.
    """

    kind: Kind
    pattern: Optional[Pattern[str]] = None

    def __init__(
        self, kind: Kind, pattern: Union[Pattern[str], str, None] = None
    ) -> None:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)

        object.__setattr__(self, "kind", normalize_kind(kind))
        object.__setattr__(self, "pattern", pattern)

    @classmethod
    def literal(cls, kind: Kind, text: str) -> "Terminal":
        """A :py:class:`Terminal` matching exactly the given text."""
        return cls(kind, re.escape(text))

    def matches_text(self, text: str) -> bool:
        return self.pattern is None or self.pattern.fullmatch(text) is not None

    def __str__(self) -> str:
        if self.pattern is None:
            return kind_name(self.kind)
        else:
            return "{} {!r}".format(kind_name(self.kind), self.pattern.pattern)


@dataclass(frozen=True)
class Nonterminal:
    """Match a named rule of the grammar."""

    name: str

    def __str__(self) -> str:
        return self.name


MatchItem = Union[Terminal, Nonterminal]


@dataclass(frozen=True)
class Alternative:
    """
    One alternative of a grammar rule: a sequence of match items and the
    action invoked when they all match. An alternative with no items always
    matches, without consuming anything.

    When no action is given, a default is used: if the alternative consists
    of a single nonterminal its (position-stripped) token is passed through,
    otherwise the collected values are concatenated. In both cases the
    positions of the match are appended.
    """

    items: Tuple[MatchItem, ...] = ()
    action: Optional[Action] = None

    def __init__(
        self, items: Iterable[MatchItem] = (), action: Optional[Action] = None
    ) -> None:
        object.__setattr__(self, "items", tuple(items))
        object.__setattr__(self, "action", action)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def is_pass_through(self) -> bool:
        """True if the default action for this alternative is the identity."""
        return len(self.items) == 1 and isinstance(self.items[0], Nonterminal)

    def __str__(self) -> str:
        return " ".join(map(str, self.items)) or "<empty>"


@dataclass
class GrammarWellFormedness:
    """Base class of result from a well-formedness test."""

    def __bool__(self) -> bool:
        return False


@dataclass
class WellFormed(GrammarWellFormedness):
    """The grammar is well formed."""

    def __bool__(self) -> bool:
        return True


@dataclass
class UndefinedRule(GrammarWellFormedness):
    """The grammar refers to an undefined rule."""

    name: str


@dataclass
class LeftRecursion(GrammarWellFormedness):
    """The grammar contains a left-recursive rule."""

    name: str


class GrammarError(Exception):
    """Thrown when a problem is encountered with the grammar."""


class UndefinedRuleError(GrammarError):
    """
    Thrown when a grammar contains a reference to an undefined rule.
    """


class LeftRecursionError(GrammarError):
    """
    Thrown when a rule is re-entered at the same position without any input
    being consumed, i.e. the grammar is (directly, indirectly or hiddenly)
    left-recursive.
    """


class GrammarNotWellFormedError(GrammarError):
    """The grammar is not well formed. Carries the failed well-formedness result."""


@dataclass
class Grammar:
    """A grammar table."""

    rules: Mapping[str, Sequence[Alternative]]
    """The ordered alternatives of each nonterminal in the grammar."""

    start_rule: str = "toplevel"
    """Name of the nonterminal matched repeatedly at the top level."""

    def alternatives(self, name: str) -> Sequence[Alternative]:
        """The alternatives for a nonterminal, in priority order."""
        try:
            return self.rules[name]
        except KeyError:
            raise UndefinedRuleError(name) from None

    def nullable_rules(self) -> Set[str]:
        """The names of the rules which may match without consuming input."""
        nullable: Set[str] = set()
        changed = True
        while changed:
            changed = False
            for name, alternatives in self.rules.items():
                if name in nullable:
                    continue
                if any(
                    all(
                        isinstance(item, Nonterminal) and item.name in nullable
                        for item in alternative.items
                    )
                    for alternative in alternatives
                ):
                    nullable.add(name)
                    changed = True
        return nullable

    def first_rules(self, name: str, nullable: Optional[Set[str]] = None) -> Set[str]:
        """
        The names of the rules which may be matched by ``name`` before any
        input has been consumed. Results are not recursive.
        """
        if nullable is None:
            nullable = self.nullable_rules()

        first: Set[str] = set()
        for alternative in self.rules.get(name, ()):
            for item in alternative.items:
                if not isinstance(item, Nonterminal):
                    break
                first.add(item.name)
                if item.name not in nullable:
                    break
        return first

    def is_well_formed(self) -> GrammarWellFormedness:
        """
        Is this grammar well-formed? That is, is its start rule defined, is
        it free from references to undefined rules and from
        (direct/indirect/hidden) left recursion?
        """
        if self.start_rule not in self.rules:
            return UndefinedRule(self.start_rule)

        for alternatives in self.rules.values():
            for alternative in alternatives:
                for item in alternative.items:
                    if isinstance(item, Nonterminal) and item.name not in self.rules:
                        return UndefinedRule(item.name)

        nullable = self.nullable_rules()
        first: Dict[str, Set[str]] = {
            name: self.first_rules(name, nullable) for name in self.rules
        }
        for name in self.rules:
            to_visit = list(first[name])
            visited: Set[str] = set()
            while to_visit:
                other = to_visit.pop()
                if other == name:
                    return LeftRecursion(name)
                if other not in visited:
                    visited.add(other)
                    to_visit.extend(first[other])

        return WellFormed()
