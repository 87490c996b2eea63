"""
A compiled grammar for the grammar source syntax, along with the actions it
uses. See also ``meta_grammar.by``.

Each toplevel match of the meta grammar produces one flat token describing a
single piece of grammar source:

* ``("start", name, start, end)`` for a ``%start`` directive,
* ``("token", name, start, end)`` for a ``%token`` directive,
* ``("rule", name, start, end)`` for the ``name :`` beginning a rule,
* ``("item", name, pattern, start, end)`` for an item of an alternative
  (``pattern`` being None when no pattern was given),
* ``("action", name, start, end)`` for an ``=> name`` action reference,
* ``("separator", start, end)`` for the ``|`` between alternatives,
* ``("terminator", start, end)`` for the ``;`` ending a rule.

:py:func:`bovinator.grammar_compiler.read_declarations` assembles these into
rule definitions and :py:func:`bovinator.grammar_compiler.compile_grammar`
turns those into a :py:class:`Grammar`.
"""

import os

from typing import Any, List, Mapping

from bovinator.lexer import Lexer, SyntaxTable, TokenKind
from bovinator.grammar import Alternative, Grammar, Nonterminal, Terminal
from bovinator.tokens import SemanticToken


def start_directive(values: List[Any], start: int, end: int) -> SemanticToken:
    _percent, _start, name = values
    return ("start", name, start, end)


def token_directive(values: List[Any], start: int, end: int) -> SemanticToken:
    _percent, _token, name = values
    return ("token", name, start, end)


def rule_head(values: List[Any], start: int, end: int) -> SemanticToken:
    name, _colon = values
    return ("rule", name, start, end)


def alternative_separator(values: List[Any], start: int, end: int) -> SemanticToken:
    return ("separator", start, end)


def rule_terminator(values: List[Any], start: int, end: int) -> SemanticToken:
    return ("terminator", start, end)


def action_reference(values: List[Any], start: int, end: int) -> SemanticToken:
    _equals, _greater_than, name = values
    return ("action", name, start, end)


def pattern_item(values: List[Any], start: int, end: int) -> SemanticToken:
    name, quoted_pattern = values
    return ("item", name, unquote(quoted_pattern), start, end)


def plain_item(values: List[Any], start: int, end: int) -> SemanticToken:
    (name,) = values
    return ("item", name, None, start, end)


ESCAPE_CHARS: Mapping[str, str] = {
    "\\": "\\",
    "'": "'",
    '"': '"',
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}
"""
An enumeration of all valid escape sequences. All others will be passed through
as a backslash followed by the escaped character (leaving them for the regular
expression to interpret).
"""


def unquote(quoted: str) -> str:
    """Remove the quotes from a string token and process its escapes."""
    body = quoted[1:-1]
    out: List[str] = []
    index = 0
    while index < len(body):
        char = body[index]
        if char == "\\" and index + 1 < len(body):
            escaped = body[index + 1]
            out.append(ESCAPE_CHARS.get(escaped, char + escaped))
            index += 2
        else:
            out.append(char)
            index += 1
    return "".join(out)


syntax = SyntaxTable(
    symbol_chars="_-",
    punctuation=":|;=>%",
    parens=(),
    string_quotes="\"'",
    escape_chars="\\",
    comments=(("#", "\n"),),
)
"""The character classes of grammar source."""

lexer = Lexer(syntax, ignore_comments=True)
"""A :py:class:`Lexer` for grammar source."""


grammar_source = open(
    os.path.join(os.path.dirname(__file__), "meta_grammar.by"), "r"
).read()
"""
A textual description of the meta grammar which matches grammar source.
"""


def _punctuation(pattern: str) -> Terminal:
    return Terminal(TokenKind.punctuation, pattern)


def _keyword(text: str) -> Terminal:
    return Terminal(TokenKind.symbol, text)


_symbol = Terminal(TokenKind.symbol)
_string = Terminal(TokenKind.string)


grammar: Grammar = Grammar(
    start_rule="declaration",
    rules={
        "declaration": (
            Alternative(
                (_punctuation("%"), _keyword("start"), _symbol), start_directive
            ),
            Alternative(
                (_punctuation("%"), _keyword("token"), _symbol), token_directive
            ),
            Alternative((_symbol, _punctuation(":")), rule_head),
            Alternative((_punctuation(r"\|"),), alternative_separator),
            Alternative((_punctuation(";"),), rule_terminator),
            Alternative(
                (_punctuation("="), _punctuation(">"), _symbol), action_reference
            ),
            Alternative((Nonterminal("item"),)),
        ),
        "item": (
            Alternative((_symbol, _string), pattern_item),
            Alternative((_symbol,), plain_item),
        ),
    },
)
"""
A meta grammar which matches grammar source, producing the declaration tokens
described above.
"""
