"""Thompson's construction: postfix regex -> epsilon-NFA."""

import itertools
import logging
from collections import defaultdict

from .errors import RegexSyntaxError
from .regex_compiler import compile_postfix, is_symbol
from .symbols import CONCAT, EPSILON, STAR, UNION

logger = logging.getLogger(__name__)


class State:
    """Represents a state in the automaton."""
    def __init__(self, id):
        self.id = id
        self.transitions = defaultdict(list)

    def add_transition(self, symbol, target):
        self.transitions[symbol].append(target)

    def __repr__(self):
        return f'q{self.id}'


class Fragment:
    """A partial NFA with a single entry and a single exit state."""
    def __init__(self, start, accept):
        self.start = start
        self.accept = accept


class NFA:
    """An epsilon-NFA rooted at ``start`` with one accepting state."""
    def __init__(self, start, accept, postfix=''):
        self.start = start
        self.accept = accept
        self.postfix = postfix

    @property
    def states(self):
        """States reachable from the start state, in depth-first discovery order."""
        seen = {self.start.id}
        ordered = []
        stack = [self.start]
        while stack:
            state = stack.pop()
            ordered.append(state)
            for symbol in sorted(state.transitions, reverse=True):
                for target in reversed(state.transitions[symbol]):
                    if target.id not in seen:
                        seen.add(target.id)
                        stack.append(target)
        return ordered

    @property
    def alphabet(self):
        symbols = set()
        for state in self.states:
            symbols.update(state.transitions)
        symbols.discard(EPSILON)
        return symbols

    def transition_list(self):
        """List of ``(source_id, symbol, target_id)`` triples."""
        return [
            (state.id, symbol, target.id)
            for state in self.states
            for symbol, targets in state.transitions.items()
            for target in targets
        ]

    def to_dict(self):
        return {
            "states": sorted(state.id for state in self.states),
            "transitions": [
                {"from": source, "symbol": symbol, "to": target}
                for source, symbol, target in self.transition_list()
            ],
            "start": self.start.id,
            "accept": self.accept.id,
        }


class ThompsonBuilder:
    """Builds an NFA fragment per postfix token.

    Each builder owns its state-id counter, so separate constructions never
    share or collide ids.
    """

    def __init__(self):
        self._counter = itertools.count()
        self.steps = []

    def new_state(self):
        return State(next(self._counter))

    def build(self, postfix):
        """Convert a postfix token sequence to an ``NFA``."""
        postfix = list(postfix)
        self.steps.append(f"Postfix: {''.join(postfix)}")
        stack = []

        for token in postfix:
            if token == STAR:
                if not stack:
                    raise RegexSyntaxError("* requires one operand.")
                stack.append(self._star(stack.pop()))
            elif token == CONCAT:
                if len(stack) < 2:
                    raise RegexSyntaxError("Concatenation requires two operands.")
                right, left = stack.pop(), stack.pop()
                stack.append(self._concat(left, right))
            elif token == UNION:
                if len(stack) < 2:
                    raise RegexSyntaxError("Union requires two operands.")
                right, left = stack.pop(), stack.pop()
                stack.append(self._union(left, right))
            elif is_symbol(token):
                stack.append(self._symbol(token))
            else:
                raise RegexSyntaxError(f"unexpected token '{token}' in postfix.")

        if len(stack) != 1:
            raise RegexSyntaxError("Incorrect syntax.")

        fragment = stack.pop()
        return NFA(fragment.start, fragment.accept, ''.join(postfix))

    def _symbol(self, symbol):
        start, accept = self.new_state(), self.new_state()
        start.add_transition(symbol, accept)
        self.steps.append(f"Symbol {symbol}: {start.id} -> {accept.id}")
        return Fragment(start, accept)

    def _star(self, fragment):
        start, accept = self.new_state(), self.new_state()
        start.add_transition(EPSILON, fragment.start)
        start.add_transition(EPSILON, accept)
        fragment.accept.add_transition(EPSILON, fragment.start)
        fragment.accept.add_transition(EPSILON, accept)
        self.steps.append(f"Kleene Star: {start.id} -> {accept.id}")
        return Fragment(start, accept)

    def _concat(self, left, right):
        left.accept.add_transition(EPSILON, right.start)
        self.steps.append(f"Concatenation: {left.accept.id} -> {right.start.id}")
        return Fragment(left.start, right.accept)

    def _union(self, left, right):
        start, accept = self.new_state(), self.new_state()
        start.add_transition(EPSILON, left.start)
        start.add_transition(EPSILON, right.start)
        left.accept.add_transition(EPSILON, accept)
        right.accept.add_transition(EPSILON, accept)
        self.steps.append(f"Union: {start.id} -> {accept.id}")
        return Fragment(start, accept)


def re_to_nfa(regex):
    """Convert a regular expression to an ε-NFA using Thompson's Construction.

    Returns the NFA together with the construction steps.
    """
    builder = ThompsonBuilder()
    nfa = builder.build(compile_postfix(regex))
    logger.debug("Thompson NFA for %r has %d states", regex, len(nfa.states))
    return nfa, builder.steps
