"""Direct regex -> DFA construction from the augmented syntax tree.

The regex is augmented as ``(regex)#`` and turned into an operator tree.
``nullable``, ``firstpos`` and ``lastpos`` are computed as each node is
created from the postfix form, so children are always complete before their
parent; ``followpos`` is filled in at the same time by concat and star
nodes. No pass over the tree recurses.
"""

import enum
import logging
from collections import deque

from .dfa import DFA, format_members
from .errors import RegexSyntaxError
from .regex_compiler import augmented_postfix
from .symbols import CONCAT, END_MARKER, EPSILON, STAR, UNION

logger = logging.getLogger(__name__)


class NodeKind(enum.Enum):
    LEAF = 'leaf'
    CONCAT = 'concat'
    UNION = 'union'
    STAR = 'star'


class Node:
    """Syntax tree node. Leaves carry a symbol and a position."""
    def __init__(self, kind, symbol, id, left=None, right=None, position=None):
        self.kind = kind
        self.symbol = symbol
        self.id = id
        self.left = left
        self.right = right
        self.position = position
        self.nullable = False
        self.firstpos = set()
        self.lastpos = set()

    def __repr__(self):
        return f'{self.id}({self.symbol})'


class SyntaxTree:
    """Augmented syntax tree with its position tables."""

    def __init__(self, regex):
        self.regex = regex
        self.nodes = []
        self.followpos = {}
        self.symbols = {}
        self.end_position = None
        self.steps = []
        self.root = self._build(augmented_postfix(regex))

    def _new_node(self, kind, symbol, **kwargs):
        node = Node(kind, symbol, f'T{len(self.nodes)}', **kwargs)
        self.nodes.append(node)
        return node

    def _build(self, postfix):
        self.steps.append(f"Postfix with end marker: {''.join(postfix)}")
        stack = []
        position = 1

        for token in postfix:
            if token == STAR:
                if not stack:
                    raise RegexSyntaxError("* requires one operand.", self.regex)
                child = stack.pop()
                stack.append(self._star(child))
                self.steps.append(f"Kleene Star on {child.symbol}")
            elif token in (CONCAT, UNION):
                if len(stack) < 2:
                    name = 'Concatenation' if token == CONCAT else 'Union'
                    raise RegexSyntaxError(f"{name} requires two operands.", self.regex)
                right, left = stack.pop(), stack.pop()
                if token == CONCAT:
                    stack.append(self._concat(left, right))
                    self.steps.append(f"Concatenation of {left.symbol} and {right.symbol}")
                else:
                    stack.append(self._union(left, right))
                    self.steps.append(f"Union of {left.symbol} and {right.symbol}")
            else:
                stack.append(self._leaf(token, position))
                self.steps.append(f"Leaf {token} at position {position}")
                position += 1

        if len(stack) != 1:
            raise RegexSyntaxError("Incorrect syntax.", self.regex)

        root = stack.pop()
        self.steps.append(
            f"Computed properties: nullable={root.nullable}, "
            f"firstpos={format_members(root.firstpos)}, lastpos={format_members(root.lastpos)}"
        )
        for pos in sorted(self.followpos):
            if self.followpos[pos]:
                self.steps.append(f"Followpos({pos}): {format_members(self.followpos[pos])}")
        return root

    def _leaf(self, symbol, position):
        node = self._new_node(NodeKind.LEAF, symbol, position=position)
        if symbol == EPSILON:
            node.nullable = True
            return node
        node.firstpos = {position}
        node.lastpos = {position}
        self.symbols[position] = symbol
        self.followpos[position] = set()
        if symbol == END_MARKER:
            self.end_position = position
        return node

    def _union(self, left, right):
        node = self._new_node(NodeKind.UNION, UNION, left=left, right=right)
        node.nullable = left.nullable or right.nullable
        node.firstpos = left.firstpos | right.firstpos
        node.lastpos = left.lastpos | right.lastpos
        return node

    def _concat(self, left, right):
        node = self._new_node(NodeKind.CONCAT, CONCAT, left=left, right=right)
        node.nullable = left.nullable and right.nullable
        node.firstpos = left.firstpos | (right.firstpos if left.nullable else set())
        node.lastpos = right.lastpos | (left.lastpos if right.nullable else set())
        for i in left.lastpos:
            self.followpos[i] |= right.firstpos
        return node

    def _star(self, child):
        node = self._new_node(NodeKind.STAR, STAR, left=child)
        node.nullable = True
        node.firstpos = set(child.firstpos)
        node.lastpos = set(child.lastpos)
        for i in node.lastpos:
            self.followpos[i] |= node.firstpos
        return node

    def to_dict(self):
        """Node hierarchy as nested ``{symbol, left, right}`` dicts."""
        converted = {}
        # post-order over an explicit stack
        stack = [(self.root, False)]
        while stack:
            node, expanded = stack.pop()
            if node is None:
                continue
            if not expanded:
                stack.append((node, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
                continue
            entry = {
                "id": node.id,
                "type": node.kind.value,
                "symbol": node.symbol,
                "nullable": node.nullable,
                "firstpos": sorted(node.firstpos),
                "lastpos": sorted(node.lastpos),
                "left": converted.get(id(node.left)) if node.left else None,
                "right": converted.get(id(node.right)) if node.right else None,
            }
            if node.position is not None:
                entry["position"] = node.position
            converted[id(node)] = entry
        return converted[id(self.root)]


def tree_to_dfa(tree):
    """Build a DFA from the followpos table of ``tree``."""
    dfa = DFA()
    steps = []

    start_positions = tree.root.firstpos
    start, _ = dfa.add_state(start_positions)
    dfa.start = start
    steps.append(f"Start state: {format_members(start_positions)} -> {dfa.name(start)}")

    unmarked = deque([start])
    while unmarked:
        current = unmarked.popleft()

        symbol_map = {}
        for pos in dfa.members[current]:
            symbol = tree.symbols[pos]
            if symbol == END_MARKER:
                continue
            symbol_map.setdefault(symbol, set()).update(tree.followpos[pos])

        for symbol in sorted(symbol_map):
            target_positions = symbol_map[symbol]
            target, is_new = dfa.add_state(target_positions)
            if is_new:
                unmarked.append(target)
            dfa.add_transition(current, symbol, target)
            steps.append(
                f"{dfa.name(current)} --{symbol}--> {dfa.name(target)} (from {format_members(target_positions)})"
            )

    dfa.accept = [state for state in dfa.states if tree.end_position in dfa.members[state]]
    steps.append(f"Accept states: {', '.join(dfa.name(state) for state in dfa.accept)}")
    return dfa, steps


def syntax_tree_dfa(regex):
    """Convert ``regex`` straight to a DFA via firstpos/lastpos/followpos.

    Returns ``(dfa, steps, tree)``.
    """
    tree = SyntaxTree(regex)
    dfa, dfa_steps = tree_to_dfa(tree)
    logger.debug("Syntax tree for %r: %d nodes, %d DFA states", regex, len(tree.nodes), len(dfa.members))
    return dfa, tree.steps + dfa_steps, tree
