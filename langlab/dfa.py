"""Deterministic automata and the subset construction."""

import logging
from collections import deque

from .symbols import EPSILON

logger = logging.getLogger(__name__)


def canonical(members):
    """Order-independent key for a set of NFA state ids or tree positions."""
    return tuple(sorted(members))


def format_members(members):
    return '{' + ','.join(str(m) for m in canonical(members)) + '}'


class DFA:
    """A DFA whose states are identified by the sets they stand for.

    State ``i`` is named ``S{i}`` and ``members[i]`` is its canonical
    (sorted) id-set. The transition function is partial: a missing
    ``(state, symbol)`` pair means there is no move.
    """

    def __init__(self):
        self.members = []
        self.index = {}
        self.transitions = {}
        self.start = 0
        self.accept = []

    def add_state(self, members):
        """Register ``members`` and return ``(state, is_new)``."""
        key = canonical(members)
        if key in self.index:
            return self.index[key], False
        state = len(self.members)
        self.members.append(key)
        self.index[key] = state
        return state, True

    def add_transition(self, source, symbol, target):
        self.transitions.setdefault(source, {})[symbol] = target

    def lookup(self, members):
        return self.index.get(canonical(members))

    @staticmethod
    def name(state):
        return f'S{state}'

    @property
    def states(self):
        return list(range(len(self.members)))

    @property
    def alphabet(self):
        symbols = set()
        for moves in self.transitions.values():
            symbols.update(moves)
        return symbols

    def to_dict(self):
        return {
            "states": [self.name(state) for state in self.states],
            "transitions": {
                self.name(source): {symbol: self.name(target) for symbol, target in sorted(moves.items())}
                for source, moves in sorted(self.transitions.items())
            },
            "start": self.name(self.start),
            "accept": [self.name(state) for state in self.accept],
        }


def epsilon_closure(states):
    """Compute the epsilon closure of a collection of ``State`` objects."""
    stack = list(states)
    closure = {state.id: state for state in stack}

    while stack:
        current_state = stack.pop()
        for next_state in current_state.transitions.get(EPSILON, ()):
            if next_state.id not in closure:
                closure[next_state.id] = next_state
                stack.append(next_state)
    return set(closure.values())


def move(states, symbol):
    """States reachable from ``states`` on one ``symbol`` transition."""
    result = {}
    for state in states:
        for next_state in state.transitions.get(symbol, ()):
            result[next_state.id] = next_state
    return set(result.values())


def ids(states):
    return {state.id for state in states}


def nfa_to_dfa(nfa):
    """Convert an NFA to a DFA using subset construction.

    Returns the DFA and a list of human readable steps.
    """
    dfa = DFA()
    steps = []

    initial_closure = epsilon_closure([nfa.start])
    start, _ = dfa.add_state(ids(initial_closure))
    dfa.start = start
    steps.append(f"Start state: {format_members(ids(initial_closure))} -> {dfa.name(start)}")

    unprocessed_states = deque([(start, initial_closure)])
    while unprocessed_states:
        current, current_states = unprocessed_states.popleft()

        symbols = set()
        for state in current_states:
            symbols.update(symbol for symbol in state.transitions if symbol != EPSILON)

        for symbol in sorted(symbols):
            target_states = epsilon_closure(move(current_states, symbol))
            target_ids = ids(target_states)
            target, is_new = dfa.add_state(target_ids)
            if is_new:
                unprocessed_states.append((target, target_states))
            dfa.add_transition(current, symbol, target)
            steps.append(
                f"{dfa.name(current)} --{symbol}--> {dfa.name(target)} (from {format_members(target_ids)})"
            )

    dfa.accept = [state for state in dfa.states if nfa.accept.id in dfa.members[state]]
    steps.append(f"Accept states: {', '.join(dfa.name(state) for state in dfa.accept)}")
    logger.debug("Subset construction produced %d DFA states", len(dfa.members))
    return dfa, steps
