"""
Compile grammar source text into a :py:class:`Grammar`.

Grammar source looks like::

    # Comments run to the end of the line
    %start toplevel
    %token NUMBER

    toplevel : symbol "defun" symbol semantic-list => function
             | NUMBER
             | punctuation ";" => discard
             ;

Items which name a token kind (either one of the built-in
:py:class:`TokenKind` names or a kind declared with ``%token``) are terminals
and may be followed by a pattern (a Python regular expression which the
token's text must match in its entirety). Any other item refers to a rule.
``=> name`` attaches the named action to an alternative; alternatives without
one use the default action.

The source is parsed using the bovinator itself, see
:py:mod:`bovinator.meta_grammar`.
"""

import logging
import re

from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from bovinator.error_messages import format_error_message
from bovinator.lexer import LexError, TokenKind
from bovinator.grammar import (
    Action,
    Alternative,
    Grammar,
    GrammarError,
    GrammarNotWellFormedError,
    MatchItem,
    Nonterminal,
    Terminal,
)
from bovinator.session import ParseError, ParserSession
from bovinator.tokens import token_start
from bovinator import meta_grammar


__all__ = [
    "GrammarCompileError",
    "GrammarSyntaxError",
    "RuleDefinedMultipleTimesError",
    "TokenRedefinedError",
    "UnknownActionError",
    "PatternOnNonterminalError",
    "InvalidPatternError",
    "read_declarations",
    "compile_grammar",
]


logger = logging.getLogger(__name__)


class GrammarCompileError(GrammarError):
    """Thrown during grammar compilation if the grammar is not valid."""


class GrammarSyntaxError(GrammarCompileError):
    """The grammar source could not be parsed."""

    def __init__(self, offset: int, message: str, text: str = "") -> None:
        super().__init__()
        self.offset = offset
        self.message = message
        self.text = text

    def __str__(self) -> str:
        return format_error_message(self.text, self.offset, self.message)


class RuleDefinedMultipleTimesError(GrammarCompileError):
    """Name redefined in a grammar."""


class TokenRedefinedError(GrammarCompileError):
    """A token kind was declared more than once or is also defined as a rule."""


class UnknownActionError(GrammarCompileError):
    """An alternative names an action which was not supplied."""


class PatternOnNonterminalError(GrammarCompileError):
    """A pattern was given for an item which is not a token kind."""


class InvalidPatternError(GrammarCompileError):
    """A pattern is not a valid regular expression."""


_Item = Tuple[str, Optional[str]]

Declaration = Tuple[Any, ...]
"""
A declaration read from grammar source: ``("start", name)``,
``("token", name)`` or ``("rule", name, alternatives)`` where
``alternatives`` is a tuple of ``(items, action_name)`` pairs and ``items`` a
tuple of ``(name, pattern)`` pairs.
"""


def read_declarations(source: str) -> List[Declaration]:
    """
    Parse grammar source into a list of declarations.

    The meta grammar matches the pieces of a rule (its head, items, actions,
    separators and terminator) one at a time. These are assembled into rule
    definitions here.
    """
    try:
        pieces = ParserSession(
            meta_grammar.grammar, lexer=meta_grammar.lexer
        ).parse_all(source)
    except LexError as exc:
        raise GrammarSyntaxError(exc.offset, exc.message, source) from exc
    except ParseError as exc:
        raise GrammarSyntaxError(
            exc.offset, "Expected a rule, directive, item or action", source
        ) from exc

    declarations: List[Declaration] = []

    # State of the rule being read, if any
    rule: Optional[Tuple[str, int]] = None
    alternatives: List[Tuple[Tuple[_Item, ...], Optional[str]]] = []
    items: List[_Item] = []
    action_name: Optional[str] = None

    for piece in pieces:
        kind = piece[0]
        offset = token_start(piece)
        if rule is None:
            if kind in ("start", "token"):
                declarations.append((kind, piece[1]))
            elif kind == "rule":
                rule = (piece[1], offset)
            else:
                raise GrammarSyntaxError(
                    offset, "Expected a rule definition or declaration", source
                )
        elif kind == "item" or kind == "action":
            if action_name is not None:
                raise GrammarSyntaxError(
                    offset, "Expected '|' or ';' after action", source
                )
            if kind == "item":
                items.append((piece[1], piece[2]))
            else:
                action_name = piece[1]
        elif kind == "separator" or kind == "terminator":
            alternatives.append((tuple(items), action_name))
            items = []
            action_name = None
            if kind == "terminator":
                declarations.append(("rule", rule[0], tuple(alternatives)))
                rule = None
                alternatives = []
        else:
            raise GrammarSyntaxError(
                offset, "Expected ';' to end rule {!r}".format(rule[0]), source
            )

    if rule is not None:
        name, offset = rule
        raise GrammarSyntaxError(
            offset, "Unterminated rule {!r} (expected ';')".format(name), source
        )

    return declarations


def compile_grammar(source: str, actions: Any = None) -> Grammar:
    """
    Compile a grammar from its source.

    Parameters
    ----------
    source : str
        The grammar source.
    actions : mapping or object
        Provides the actions named in the grammar. Either a mapping from
        action name to callable or an object (e.g. a module or class) with
        the actions as attributes. Since actions often share their names with
        Python keywords or builtins, an attribute named ``name_`` is used for
        ``name`` when ``name`` itself is not found. Hyphens in action names
        are replaced with underscores for attribute lookups.
    """
    declarations = read_declarations(source)

    start_rule = "toplevel"
    token_kinds: Set[str] = {kind.value for kind in TokenKind}
    definitions: List[Tuple[str, Any]] = []
    for declaration in declarations:
        if declaration[0] == "start":
            start_rule = declaration[1]
        elif declaration[0] == "token":
            name = declaration[1]
            if name in token_kinds:
                raise TokenRedefinedError(name)
            token_kinds.add(name)
        else:
            assert declaration[0] == "rule"
            definitions.append((declaration[1], declaration[2]))

    rules: Dict[str, Tuple[Alternative, ...]] = {}
    for name, alternatives in definitions:
        if name in rules:
            raise RuleDefinedMultipleTimesError(name)
        if name in token_kinds:
            raise TokenRedefinedError(name)

        rules[name] = tuple(
            compile_alternative(items, action_name, token_kinds, actions)
            for items, action_name in alternatives
        )

    grammar = Grammar(rules=rules, start_rule=start_rule)
    logger.debug("Compiled grammar with %d rules", len(rules))

    well_formed = grammar.is_well_formed()
    if not well_formed:
        raise GrammarNotWellFormedError(well_formed)

    return grammar


def compile_alternative(
    items: Tuple[Tuple[str, Optional[str]], ...],
    action_name: Optional[str],
    token_kinds: Set[str],
    actions: Any,
) -> Alternative:
    action = None
    if action_name is not None:
        action = lookup_action(actions, action_name)

    return Alternative(
        (compile_item(name, pattern, token_kinds) for name, pattern in items),
        action,
    )


def compile_item(name: str, pattern: Optional[str], token_kinds: Set[str]) -> MatchItem:
    if name not in token_kinds:
        if pattern is not None:
            raise PatternOnNonterminalError(name)
        return Nonterminal(name)

    if pattern is None:
        return Terminal(name)

    try:
        return Terminal(name, re.compile(pattern))
    except re.error as exc:
        raise InvalidPatternError("{!r}: {}".format(pattern, exc)) from exc


def lookup_action(actions: Any, name: str) -> Action:
    """
    Find the action called ``name`` in ``actions``. See
    :py:func:`compile_grammar`.
    """
    if isinstance(actions, Mapping):
        if name in actions:
            action: Action = actions[name]
            return action
    elif actions is not None:
        attribute = name.replace("-", "_")
        for candidate in (attribute, attribute + "_"):
            action = getattr(actions, candidate, None)
            if callable(action):
                return action

    raise UnknownActionError(name)
