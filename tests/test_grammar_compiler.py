import pytest  # type: ignore

from typing import Any, List, Optional

from bovinator.lexer import Lexer, LISP_SYNTAX, TokenKind
from bovinator.grammar import (
    Terminal,
    Nonterminal,
    Alternative,
    Grammar,
    GrammarError,
    GrammarNotWellFormedError,
    UndefinedRule,
    LeftRecursion,
)
from bovinator.tokens import SemanticToken
from bovinator.session import ParserSession
from bovinator.grammar_compiler import (
    GrammarCompileError,
    GrammarSyntaxError,
    RuleDefinedMultipleTimesError,
    TokenRedefinedError,
    UnknownActionError,
    PatternOnNonterminalError,
    InvalidPatternError,
    compile_grammar,
)


def function(values: List[Any], start: int, end: int) -> SemanticToken:
    return ("function", start, end)


def variable(values: List[Any], start: int, end: int) -> SemanticToken:
    return ("variable", start, end)


class TestCompileGrammar:
    def test_rules_and_alternatives(self) -> None:
        grammar = compile_grammar(
            """
                toplevel : symbol "defun" symbol semantic-list => function
                         | symbol "defvar" symbol => variable
                         | other
                         ;
                other : string
                      |
                      ;
            """,
            {"function": function, "variable": variable},
        )
        assert grammar == Grammar(
            {
                "toplevel": (
                    Alternative(
                        [
                            Terminal("symbol", "defun"),
                            Terminal("symbol"),
                            Terminal("semantic-list"),
                        ],
                        function,
                    ),
                    Alternative(
                        [Terminal("symbol", "defvar"), Terminal("symbol")], variable
                    ),
                    Alternative([Nonterminal("other")]),
                ),
                "other": (Alternative([Terminal("string")]), Alternative()),
            }
        )

    def test_all_builtin_kinds(self) -> None:
        source = "toplevel : {} ;".format(" ".join(kind.value for kind in TokenKind))
        grammar = compile_grammar(source)
        (alternative,) = grammar.alternatives("toplevel")
        assert alternative.items == tuple(Terminal(kind) for kind in TokenKind)

    def test_token_declarations(self) -> None:
        grammar = compile_grammar(
            """
                toplevel : NUMBER | NUMBER "0x.*" ;
                %token NUMBER
            """
        )
        assert grammar.alternatives("toplevel") == (
            Alternative([Terminal("NUMBER")]),
            Alternative([Terminal("NUMBER", "0x.*")]),
        )

    def test_start_rule(self) -> None:
        grammar = compile_grammar("%start begin\nbegin : symbol ;")
        assert grammar.start_rule == "begin"

        # The first rule is not implicitly the start rule
        assert compile_grammar("toplevel : a ; a : symbol ;").start_rule == "toplevel"

    @pytest.mark.parametrize(
        "source, exp_pattern",
        [
            ('toplevel : punctuation "\\|" ;', r"\|"),
            ("toplevel : punctuation '\\\\\\\\' ;", r"\\"),
            ("toplevel : string '\"[^\"]*\"' ;", r'"[^"]*"'),
            ("toplevel : string \"'\" ;", r"'"),
            ("toplevel : symbol '[a-z]+\\d*' ;", r"[a-z]+\d*"),
        ],
    )
    def test_patterns(self, source: str, exp_pattern: str) -> None:
        grammar = compile_grammar(source)
        (alternative,) = grammar.alternatives("toplevel")
        (terminal,) = alternative.items
        assert isinstance(terminal, Terminal)
        assert terminal.pattern is not None
        assert terminal.pattern.pattern == exp_pattern

    @pytest.mark.parametrize("count", [1, 200, 500])
    def test_long_rules(self, count: int) -> None:
        grammar = compile_grammar(
            "toplevel : {} ;\nother : {} ;".format(
                "symbol " * count, " | ".join(["string"] * count)
            )
        )
        assert grammar.alternatives("toplevel") == (
            Alternative([Terminal("symbol")] * count),
        )
        assert grammar.alternatives("other") == (
            (Alternative([Terminal("string")]),) * count
        )


class ActionsObject:
    def function(self, values: List[Any], start: int, end: int) -> SemanticToken:
        return ("function", start, end)

    def type_(self, values: List[Any], start: int, end: int) -> SemanticToken:
        return ("type", start, end)

    def with_hyphens(self, values: List[Any], start: int, end: int) -> SemanticToken:
        return ("with-hyphens", start, end)

    not_callable = "nope"


class TestActionLookup:
    @pytest.mark.parametrize(
        "name, exp_kind",
        [
            ("function", "function"),
            # Trailing underscore for names clashing with Python builtins
            ("type", "type"),
            ("type_", "type"),
            # Hyphens become underscores
            ("with-hyphens", "with-hyphens"),
        ],
    )
    def test_attributes(self, name: str, exp_kind: str) -> None:
        actions = ActionsObject()
        grammar = compile_grammar("toplevel : symbol => {} ;".format(name), actions)
        (alternative,) = grammar.alternatives("toplevel")
        assert alternative.action is not None
        assert alternative.action([], 0, 1) == (exp_kind, 0, 1)

    def test_mapping(self) -> None:
        grammar = compile_grammar("toplevel : symbol => f ;", {"f": function})
        (alternative,) = grammar.alternatives("toplevel")
        assert alternative.action is function

    @pytest.mark.parametrize(
        "actions",
        [None, {}, {"other": function}, ActionsObject()],
    )
    def test_unknown_action(self, actions: Any) -> None:
        with pytest.raises(UnknownActionError):
            compile_grammar("toplevel : symbol => missing ;", actions)

    def test_non_callable_attribute(self) -> None:
        with pytest.raises(UnknownActionError):
            compile_grammar("toplevel : symbol => not_callable ;", ActionsObject())


class TestCompileErrors:
    def test_exception_hierarchy(self) -> None:
        assert issubclass(GrammarCompileError, GrammarError)
        assert issubclass(GrammarSyntaxError, GrammarCompileError)

    def test_rule_defined_multiple_times(self) -> None:
        with pytest.raises(RuleDefinedMultipleTimesError):
            compile_grammar("toplevel : symbol ; toplevel : string ;")

    @pytest.mark.parametrize(
        "source",
        [
            "%token symbol\ntoplevel : symbol ;",
            "%token A\n%token A\ntoplevel : A ;",
            "%token A\ntoplevel : A ;\nA : symbol ;",
            "toplevel : string ;\nsymbol : string ;",
        ],
    )
    def test_token_redefined(self, source: str) -> None:
        with pytest.raises(TokenRedefinedError):
            compile_grammar(source)

    def test_pattern_on_nonterminal(self) -> None:
        with pytest.raises(PatternOnNonterminalError):
            compile_grammar('toplevel : other "x" ;\nother : ;')

    def test_invalid_pattern(self) -> None:
        with pytest.raises(InvalidPatternError):
            compile_grammar('toplevel : punctuation "(" ;')

    @pytest.mark.parametrize(
        "source, exp_offset",
        [
            # Parse failures
            ("toplevel : symbol", 0),
            ("toplevel : symbol ;\nother : 'x' ;", 28),
            ("toplevel : symbol => a b ;", 23),
            # Lexing failures
            ("toplevel : symbol 'x ;", 18),
            ("toplevel : (symbol) ;", 11),
        ],
    )
    def test_syntax_errors(self, source: str, exp_offset: int) -> None:
        with pytest.raises(GrammarSyntaxError) as exc_info:
            compile_grammar(source)
        assert exc_info.value.offset == exp_offset
        assert str(exc_info.value).startswith("At line ")

    @pytest.mark.parametrize(
        "source, exp",
        [
            ("", UndefinedRule("toplevel")),
            ("other : symbol ;", UndefinedRule("toplevel")),
            ("toplevel : missing ;", UndefinedRule("missing")),
            ("toplevel : toplevel symbol | symbol ;", LeftRecursion("toplevel")),
        ],
    )
    def test_not_well_formed(self, source: str, exp: Any) -> None:
        with pytest.raises(GrammarNotWellFormedError) as exc_info:
            compile_grammar(source)
        assert exc_info.value.args == (exp,)


class LispActions:
    session: Optional[ParserSession] = None

    def expand_definition(
        self, values: List[Any], start: int, end: int
    ) -> Optional[SemanticToken]:
        assert self.session is not None
        (span,) = values
        token = self.session.expand(span, "definition")
        if token is None:
            return None
        return token[:-2] + (start, end)

    def function(self, values: List[Any], start: int, end: int) -> SemanticToken:
        _defun, name, arguments = values
        return (name, "function", arguments, start, end)

    def variable(self, values: List[Any], start: int, end: int) -> SemanticToken:
        _defvar, name, _value = values
        return (name, "variable", None, start, end)


LISP_GRAMMAR_SOURCE = """
    # Picks definitions out of Lisp source code
    toplevel : semantic-list => expand_definition
             ;

    definition : symbol "defun" symbol semantic-list => function
               | symbol "defvar" symbol value => variable
               ;

    value : symbol | string | semantic-list ;
"""


def test_compiled_grammar_end_to_end() -> None:
    actions = LispActions()
    grammar = compile_grammar(LISP_GRAMMAR_SOURCE, actions)
    session = ParserSession(grammar, lexer=Lexer(LISP_SYNTAX))
    actions.session = session

    assert session.parse_all("(defun foo (x y))") == [
        ("foo", "function", (11, 16), 0, 17)
    ]

    session.invalidate()
    text = '(defvar bar "x") ; comment\n(message "hi")\n(defun baz ())'
    assert session.parse_all(text) == [
        ("bar", "variable", None, 0, 16),
        ("baz", "function", (53, 55), 42, 56),
    ]
