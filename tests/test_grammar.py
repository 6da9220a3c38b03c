import logging
from collections import deque

import pytest

from langlab.errors import GrammarFormatError, NotLL1Error
from langlab.grammar import (
    Grammar, LL1Analyzer, build_parsing_table, compute_first, compute_follow,
    first_of_sequence, parse_grammar, remove_left_recursion,
)
from langlab.symbols import EPSILON

INDIRECT_GRAMMAR = "S -> A a | b\nA -> A c | S d | ε"


def has_left_recursion(grammar):
    """True if some nonterminal derives itself as the first symbol without consuming input."""
    first = compute_first(grammar)
    corners = {}
    for nt, productions in grammar.productions.items():
        corners[nt] = set()
        for production in productions:
            for symbol in production:
                if not grammar.is_nonterminal(symbol):
                    break
                corners[nt].add(symbol)
                if EPSILON not in first[symbol]:
                    break
    for nt in grammar.nonterminals:
        seen = set()
        queue = deque(corners[nt])
        while queue:
            symbol = queue.popleft()
            if symbol == nt:
                return True
            if symbol not in seen:
                seen.add(symbol)
                queue.extend(corners[symbol])
    return False


def test_parse_grammar(expression_grammar):
    grammar = parse_grammar(expression_grammar)
    assert grammar.nonterminals == ['E', 'T', 'F']
    assert grammar.start == 'E'
    assert grammar.productions['E'] == [['E', '+', 'T'], ['T']]
    assert grammar.productions['F'] == [['(', 'E', ')'], ['id']]
    assert grammar.terminals == ['+', '*', '(', ')', 'id', '$']


def test_epsilon_aliases_and_repeated_lhs():
    grammar = parse_grammar("A -> a A | eps\n\nA -> b\nB -> ^")
    assert grammar.productions['A'] == [['a', 'A'], ['ε'], ['b']]
    assert grammar.productions['B'] == [['ε']]


def test_explicit_start_symbol(expression_grammar):
    assert parse_grammar(expression_grammar, start='T').start == 'T'
    with pytest.raises(GrammarFormatError):
        parse_grammar(expression_grammar, start='X')


@pytest.mark.parametrize("text, line_number", [
    ("E T", 1),
    ("S -> a\nE ->", 2),
    ("S -> a | | b", 1),
    ("S -> a |", 1),
    ("-> a", 1),
    ("A B -> a", 1),
    ("$ -> a", 1),
])
def test_malformed_lines(text, line_number):
    with pytest.raises(GrammarFormatError) as info:
        parse_grammar(text)
    assert info.value.line_number == line_number


def test_empty_grammar():
    with pytest.raises(GrammarFormatError):
        parse_grammar("\n  \n")


def test_direct_left_recursion(expression_grammar):
    grammar = parse_grammar(expression_grammar)
    steps = remove_left_recursion(grammar)

    assert grammar.productions == {
        'E': [['T', "E'"]],
        'T': [['F', "T'"]],
        'F': [['(', 'E', ')'], ['id']],
        "E'": [['+', 'T', "E'"], ['ε']],
        "T'": [['*', 'F', "T'"], ['ε']],
    }
    assert "Created new non-terminal E'" in steps
    assert "Created new non-terminal T'" in steps
    assert not has_left_recursion(grammar)


def test_indirect_left_recursion():
    grammar = parse_grammar(INDIRECT_GRAMMAR)
    steps = remove_left_recursion(grammar)

    assert grammar.productions == {
        'S': [['A', 'a'], ['b']],
        'A': [['b', 'd', "A'"], ["A'"]],
        "A'": [['c', "A'"], ['a', 'd', "A'"], ['ε']],
    }
    assert "Substituted productions of S into A" in steps
    assert not has_left_recursion(grammar)


def test_epsilon_substitution_exposes_earlier_nonterminal():
    grammar = parse_grammar("A -> C a | b\nB -> ε | d\nC -> B A x | e")
    steps = remove_left_recursion(grammar)

    assert grammar.productions == {
        'A': [['C', 'a'], ['b']],
        'B': [['ε'], ['d']],
        'C': [['b', 'x', "C'"], ['d', 'A', 'x', "C'"], ['e', "C'"]],
        "C'": [['a', 'x', "C'"], ['ε']],
    }
    assert "Substituted productions of A into C" in steps
    assert "Substituted productions of B into C" in steps
    assert not has_left_recursion(grammar)


def test_nullable_prefix_recursion_is_detected():
    grammar = parse_grammar("A -> B A a | b\nB -> ε | c")
    assert has_left_recursion(grammar)


def test_nullable_prefix_recursion_is_kept_and_logged(caplog):
    grammar = parse_grammar("A -> B A z | c\nB -> ε | d\nS -> A y")
    with caplog.at_level(logging.WARNING, logger="langlab.grammar"):
        remove_left_recursion(grammar)

    assert grammar.productions['S'] == [['A', 'z', 'y'], ['d', 'A', 'z', 'y'], ['c', 'y']]
    assert "nullable prefix" in caplog.text


@pytest.mark.parametrize("text", [
    "A -> B A a | b\nB -> ε | c",
    "A -> B A z | c\nB -> ε | d\nS -> A y",
])
def test_nullable_prefix_recursion_is_not_ll1(text):
    with pytest.raises(NotLL1Error):
        LL1Analyzer(text)


def test_fresh_nonterminal_does_not_clash():
    grammar = parse_grammar("A -> A x | y\nA' -> z")
    remove_left_recursion(grammar)
    assert "A''" in grammar.productions
    assert grammar.productions["A'"] == [['z']]


def test_useless_self_production_is_dropped():
    grammar = parse_grammar("A -> A | A b | c")
    remove_left_recursion(grammar)
    assert grammar.productions['A'] == [['c', "A'"]]
    assert grammar.productions["A'"] == [['b', "A'"], ['ε']]


def test_first_sets(expression_grammar):
    grammar = parse_grammar(expression_grammar)
    remove_left_recursion(grammar)
    first = compute_first(grammar)

    assert first['F'] == {'(', 'id'}
    assert first['T'] == {'(', 'id'}
    assert first['E'] == {'(', 'id'}
    assert first["E'"] == {'+', 'ε'}
    assert first["T'"] == {'*', 'ε'}


def test_follow_sets(expression_grammar):
    grammar = parse_grammar(expression_grammar)
    remove_left_recursion(grammar)
    follow = compute_follow(grammar, compute_first(grammar))

    assert follow['E'] == {'$', ')'}
    assert follow["E'"] == {'$', ')'}
    assert follow['T'] == {'+', '$', ')'}
    assert follow["T'"] == {'+', '$', ')'}
    assert follow['F'] == {'*', '+', '$', ')'}
    assert all('ε' not in symbols for symbols in follow.values())


def test_first_of_sequence(expression_grammar):
    grammar = parse_grammar(expression_grammar)
    remove_left_recursion(grammar)
    first = compute_first(grammar)

    assert first_of_sequence([], first, grammar) == {'ε'}
    assert first_of_sequence(['ε'], first, grammar) == {'ε'}
    assert first_of_sequence(["E'", "T'"], first, grammar) == {'+', '*', 'ε'}
    assert first_of_sequence(["E'", ')'], first, grammar) == {'+', ')'}


def test_fixpoints_do_not_depend_on_iteration_order(expression_grammar):
    grammar = parse_grammar(expression_grammar)
    remove_left_recursion(grammar)
    reordered = Grammar(
        {nt: list(reversed(grammar.productions[nt])) for nt in reversed(grammar.nonterminals)},
        start=grammar.start,
    )

    first = compute_first(grammar)
    assert compute_first(reordered) == first
    assert compute_follow(reordered, first) == compute_follow(grammar, first)


def test_parsing_table(expression_grammar):
    analyzer = LL1Analyzer(expression_grammar)
    table = analyzer.table

    assert len(table) == 13
    assert table[('E', 'id')] == ['T', "E'"]
    assert table[('F', '(')] == ['(', 'E', ')']
    assert table[("E'", ')')] == ['ε']
    assert table[("T'", '+')] == ['ε']
    assert ('E', '+') not in table

    as_dict = analyzer.table_to_dict()
    assert as_dict["E,id"] == "T E'"
    assert as_dict["T',$"] == "ε"
    assert analyzer.steps["table"] == ["Parsing table built successfully."]


def test_table_is_deterministic(expression_grammar):
    first = LL1Analyzer(expression_grammar)
    second = LL1Analyzer(expression_grammar)
    assert first.table_to_dict() == second.table_to_dict()
    assert first.to_dict() == second.to_dict()


def test_identical_alternatives_conflict():
    with pytest.raises(NotLL1Error, match=r"^Grammar is not LL\(1\)") as info:
        LL1Analyzer("S -> a | a")
    assert (info.value.nonterminal, info.value.terminal) == ('S', 'a')


@pytest.mark.parametrize("text, cell", [
    ("S -> a b | a c", ('S', 'a')),
    ("S -> A a\nA -> a | ε", ('A', 'a')),
])
def test_common_prefix_conflicts(text, cell):
    grammar = parse_grammar(text)
    first = compute_first(grammar)
    with pytest.raises(NotLL1Error) as info:
        build_parsing_table(grammar, first, compute_follow(grammar, first))
    assert (info.value.nonterminal, info.value.terminal) == cell


def test_unreachable_nonterminals_are_flagged(caplog):
    with caplog.at_level(logging.WARNING, logger="langlab.grammar"):
        LL1Analyzer("S -> a\nB -> b")
    assert "unreachable" in caplog.text
    assert "B" in caplog.text


def test_analyzer_keeps_original_grammar(expression_grammar):
    analyzer = LL1Analyzer(expression_grammar)
    assert analyzer.original.productions['E'] == [['E', '+', 'T'], ['T']]
    assert analyzer.nonterminals == ['E', 'T', 'F', "E'", "T'"]
    assert analyzer.terminals == ['(', ')', 'id', '+', '*', '$']
    assert analyzer.to_dict()["first"]["F"] == ['(', 'id']
