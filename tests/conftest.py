import itertools

import pytest


def _run(dfa, word):
    state = dfa.start
    for symbol in word:
        state = dfa.transitions.get(state, {}).get(symbol)
        if state is None:
            return False
    return state in dfa.accept


@pytest.fixture
def accepts():
    """Walk a DFA over ``word``; the library itself never executes automata."""
    return _run


@pytest.fixture
def words():
    def generate(alphabet, max_length):
        for length in range(max_length + 1):
            for letters in itertools.product(sorted(alphabet), repeat=length):
                yield ''.join(letters)
    return generate


EXPRESSION_GRAMMAR = "E -> E + T | T\nT -> T * F | F\nF -> ( E ) | id"


@pytest.fixture
def expression_grammar():
    return EXPRESSION_GRAMMAR
