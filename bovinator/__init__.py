r"""
Bovinator is a grammar-driven parsing engine which turns source text into a
flat list of *semantic tokens*: tuples describing the interesting constructs
(functions, variables, types and so on) found in the text, along with their
positions.

The engine knows nothing about any particular language. Callers supply a
grammar (a table of named rules, each an ordered list of alternatives with
an optional action) while the engine provides tokenization, backtracking
rule matching, action dispatch and caching of results. Like the parsers
behind editor tagging tools, it is intended to pick out the outline of a
file rather than to fully validate it: bracketed groups are (by default)
lexed as single opaque tokens which actions may expand on demand.

Basic usage
===========

A grammar is most conveniently written as grammar source. For example, a
grammar for picking out Lisp function definitions such as
``(defun foo (x y) ...)``::

    >>> grammar_source = r'''
    ...     toplevel : semantic-list => expand_definition
    ...              ;
    ...
    ...     definition : symbol "defun" symbol semantic-list => function
    ...                ;
    ... '''

Each rule lists its alternatives separated by ``|`` and terminated by ``;``.
Items naming a token kind (``symbol``, ``punctuation``, ``string``,
``semantic-list`` and so on) match a single lexical token of that kind,
optionally only when its text matches the (regular expression) pattern which
follows. Other items refer to rules. The ``toplevel`` rule is matched
repeatedly until the whole text has been consumed.

The named actions build the semantic token for each match. They are called
with the list of values matched by the alternative's items along with the
start and end offsets of the match and must return a tuple ending in a start
and end offset (or None to discard the match)::

    >>> from bovinator import compile_grammar, ParserSession, Lexer, LexExtension
    >>> from bovinator import LISP_SYNTAX

    >>> class Actions:
    ...     def expand_definition(self, values, start, end):
    ...         (span,) = values
    ...         token = session.expand(span, "definition")
    ...         if token is None:
    ...             return None
    ...         return token[:-2] + (start, end)
    ...
    ...     def function(self, values, start, end):
    ...         _defun, name, arguments = values
    ...         return (name, "function", arguments, start, end)

    >>> grammar = compile_grammar(grammar_source, Actions())
    >>> session = ParserSession(grammar, lexer=Lexer(LISP_SYNTAX))
    >>> session.parse_all("(defun foo (x y))")
    [('foo', 'function', (11, 16), 0, 17)]

Here the whole definition is lexed as a single ``semantic-list`` token whose
value is its span, ``(0, 17)``. The ``expand_definition`` action lexes the
interior of that span and matches it against the ``definition`` rule.


Grammars
========

Grammars may also be constructed directly in Python. The grammar above could
equally be written as::

    >>> from bovinator import Grammar, Alternative, Terminal, Nonterminal
    >>> actions = Actions()
    >>> grammar = Grammar({
    ...     "toplevel": (
    ...         Alternative(
    ...             (Terminal("semantic-list"),),
    ...             actions.expand_definition,
    ...         ),
    ...     ),
    ...     "definition": (
    ...         Alternative(
    ...             (
    ...                 Terminal("symbol", "defun"),
    ...                 Terminal("symbol"),
    ...                 Terminal("semantic-list"),
    ...             ),
    ...             actions.function,
    ...         ),
    ...     ),
    ... })

Alternatives are tried strictly in the order given and the first which
matches is used: there is no attempt to find a 'best' match. An alternative
with no items always matches without consuming anything.

When an alternative has no action a default is used. If the alternative
consists of a single rule reference, that rule's token is passed through
(with the new match's positions). Otherwise the matched values are collected
into a tuple, followed by the positions.

The values passed to actions are:

* The token text for terminals, except ``semantic-list`` and ``comment``
  terminals which give the ``(start, end)`` span of the token.
* The semantic token produced by a referenced rule, minus its trailing
  positions.
* A single None for an empty alternative.

Comments are skipped when matching terminals unless the terminal asks for a
``comment`` explicitly.

.. autoclass:: Grammar
    :members:

.. autoclass:: Alternative
    :members:

.. autoclass:: Terminal
    :members:

.. autoclass:: Nonterminal

.. autofunction:: compile_grammar

.. autofunction:: read_declarations


Lexing
======

Text is converted into :py:class:`LexToken`\ s by a :py:class:`Lexer`
according to a :py:class:`SyntaxTable` describing the language's character
classes. Extra token types may be added using :py:class:`LexExtension`\ s
and keywords given their own kinds::

    >>> lexer = Lexer(
    ...     extensions=[LexExtension.token(r"[0-9]+\.[0-9]+", "FLOAT")],
    ...     keywords={"return": "RETURN"},
    ... )

.. autoclass:: Lexer
    :members:

.. autoclass:: SyntaxTable

.. autoclass:: LexExtension
    :members:

.. autoclass:: TokenStream
    :members:


Sessions and caching
====================

A :py:class:`ParserSession` caches the result of the last complete parse.
The cache is reused whenever the text being parsed is the same length as the
text which was parsed: callers are responsible for calling
:py:meth:`ParserSession.invalidate` when the text changes.

.. autoclass:: ParserSession
    :members:

.. autofunction:: parse_all

.. autofunction:: match_nonterminal


Errors
======

.. autoexception:: LexError

.. autoexception:: ParseError

.. autoexception:: RecursionLimitExceeded

.. autoexception:: ParseAborted

.. autoexception:: MalformedTokenError

.. autoexception:: GrammarError

.. autoexception:: GrammarCompileError
"""


from bovinator.version import __version__

from bovinator.error_messages import *
from bovinator.tokens import *
from bovinator.lexer import *
from bovinator.grammar import *
from bovinator.matcher import *
from bovinator.session import *
from bovinator.grammar_compiler import *

# NB: These names are explicitly re-exported here because mypy in strict mode
# does not allow implicit re-exports. The completeness of this list is tested
# by the test suite.
__all__ = [  # noqa: F405
    # error_messages.*
    "offset_to_line_and_column",
    "extract_line",
    "format_error_message",
    # tokens.*
    "SemanticToken",
    "MalformedTokenError",
    "token_start",
    "token_end",
    "token_bounds",
    "strip_bounds",
    "with_bounds",
    "check_semantic_token",
    # lexer.*
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
    # grammar.*
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
    # matcher.*
    "DEFAULT_MAX_DEPTH",
    "RecursionLimitExceeded",
    "ParseAborted",
    "Match",
    "Matcher",
    "match_nonterminal",
    # session.*
    "ExpandHook",
    "ProgressHook",
    "ParseCache",
    "ParseError",
    "ParserSession",
    "parse_all",
    # grammar_compiler.*
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
