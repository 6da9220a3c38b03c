"""Regular expression to automata conversion and LL(1) grammar analysis."""

from .dfa import DFA, epsilon_closure, move, nfa_to_dfa
from .errors import GrammarFormatError, NotLL1Error, RegexSyntaxError
from .grammar import (
    Grammar, LL1Analyzer, ParseErrorKind, ParseResult, ParseStep, StepKind,
    build_parsing_table, compute_first, compute_follow, first_of_sequence,
    ll1_parse, parse_grammar, remove_left_recursion,
)
from .nfa import NFA, State, ThompsonBuilder, re_to_nfa
from .regex_compiler import regex_to_postfix
from .syntax_tree import NodeKind, SyntaxTree, syntax_tree_dfa, tree_to_dfa

__version__ = '0.1.0'
