"""LL(1) grammar analysis.

Pipeline (each stage needs the previous one to have finished):

1. ``parse_grammar``           text -> ``Grammar``
2. ``remove_left_recursion``   rewrites the grammar in place
3. ``compute_first``           FIRST sets (fixpoint)
4. ``compute_follow``          FOLLOW sets (fixpoint, needs FIRST)
5. ``build_parsing_table``     predictive table, fails on conflicts
6. ``ll1_parse``               table driven parse with a step trace

``LL1Analyzer`` runs 1-5 in order and exposes ``parse`` for step 6.
"""

import enum
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import GrammarFormatError, NotLL1Error
from .symbols import END_OF_INPUT, EPSILON, GRAMMAR_EPSILON_ALIASES, PRIME

logger = logging.getLogger(__name__)


class Grammar:
    """Nonterminal -> ordered list of productions (lists of symbols).

    The start symbol is the first declared nonterminal unless given
    explicitly. Any symbol that is not a nonterminal and not epsilon is a
    terminal.
    """

    def __init__(self, productions=None, start=None):
        self.productions = productions if productions is not None else {}
        self._start = start

    @property
    def start(self):
        if self._start is not None:
            return self._start
        return next(iter(self.productions), None)

    @property
    def nonterminals(self):
        return list(self.productions)

    def is_nonterminal(self, symbol):
        return symbol in self.productions

    @property
    def terminals(self):
        """Terminals in order of first appearance, ``$`` last."""
        seen = []
        for productions in self.productions.values():
            for production in productions:
                for symbol in production:
                    if symbol == EPSILON or symbol == END_OF_INPUT or symbol in self.productions:
                        continue
                    if symbol not in seen:
                        seen.append(symbol)
        seen.append(END_OF_INPUT)
        return seen

    def fresh_nonterminal(self, base):
        name = base + PRIME
        while name in self.productions:
            name += PRIME
        return name

    def lines(self):
        return [
            f"{nt} -> {' | '.join(' '.join(production) for production in productions)}"
            for nt, productions in self.productions.items()
        ]

    def __str__(self):
        return '\n'.join(self.lines())


def _normalize_symbol(symbol):
    return EPSILON if symbol.lower() in GRAMMAR_EPSILON_ALIASES else symbol


def _strip_epsilon(symbols):
    stripped = [symbol for symbol in symbols if symbol != EPSILON]
    return stripped or [EPSILON]


def parse_grammar(text, start=None):
    """Parse ``LHS -> alt1 | alt2`` lines into a ``Grammar``.

    Blank lines are skipped; a repeated LHS adds alternatives to the
    earlier declaration.
    """
    grammar = Grammar(start=start)

    for line_number, raw_line in enumerate((text or '').splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        if '->' not in line:
            raise GrammarFormatError("missing '->'", line_number, raw_line)

        lhs, rhs = line.split('->', 1)
        lhs = lhs.strip()
        if not lhs:
            raise GrammarFormatError("empty left-hand side", line_number, raw_line)
        if len(lhs.split()) != 1:
            raise GrammarFormatError(f"left-hand side '{lhs}' must be a single symbol", line_number, raw_line)
        if lhs == END_OF_INPUT or _normalize_symbol(lhs) == EPSILON:
            raise GrammarFormatError(f"'{lhs}' is reserved", line_number, raw_line)
        if not rhs.strip():
            raise GrammarFormatError(f"empty right-hand side for {lhs}", line_number, raw_line)

        alternatives = grammar.productions.setdefault(lhs, [])
        for alternative in rhs.split('|'):
            symbols = [_normalize_symbol(symbol) for symbol in alternative.split()]
            if not symbols:
                raise GrammarFormatError(f"empty alternative for {lhs}", line_number, raw_line)
            alternatives.append(_strip_epsilon(symbols))

    if not grammar.productions:
        raise GrammarFormatError("no productions found")
    if grammar.start not in grammar.productions:
        raise GrammarFormatError(f"start symbol '{grammar.start}' has no productions")

    logger.debug("Parsed grammar with nonterminals %s", grammar.nonterminals)
    return grammar


def unreachable_nonterminals(grammar):
    """Nonterminals that no derivation from the start symbol can reach."""
    reached = {grammar.start}
    queue = deque([grammar.start])
    while queue:
        nt = queue.popleft()
        for production in grammar.productions[nt]:
            for symbol in production:
                if grammar.is_nonterminal(symbol) and symbol not in reached:
                    reached.add(symbol)
                    queue.append(symbol)
    return [nt for nt in grammar.nonterminals if nt not in reached]


def _substitute_leading(grammar, ai, earlier):
    """Expand productions of ``ai`` until none starts with an ``earlier`` nonterminal.

    Expanding an epsilon production can expose another earlier nonterminal,
    so expansion repeats in place. Each symbol remembers which nonterminals
    were expanded to produce it; a head that came out of its own expansion
    is left recursion hidden behind a nullable prefix. Such a production is
    kept as is and the grammar then fails the LL(1) check.
    """
    earlier = set(earlier)
    rewritten = []
    substituted = set()
    pending = [
        [(symbol, frozenset()) for symbol in production]
        for production in reversed(grammar.productions[ai])
    ]

    while pending:
        tagged = pending.pop()
        head, origin = tagged[0]
        if head not in earlier or head in origin:
            if head in origin:
                logger.warning("Left recursion through a nullable prefix in %s", ai)
            rewritten.append([symbol for symbol, _ in tagged])
            continue
        substituted.add(head)
        inner = origin | {head}
        for gamma in reversed(grammar.productions[head]):
            expanded = [(symbol, inner) for symbol in gamma if symbol != EPSILON] + tagged[1:]
            pending.append(expanded or [(EPSILON, inner)])

    return rewritten, substituted


def remove_left_recursion(grammar):
    """Eliminate indirect and direct left recursion in place.

    Nonterminals are processed in declaration order; synthetic ones are
    named by appending ``'`` and are not reprocessed. Returns a log of the
    rewrites performed.
    """
    steps = []
    order = grammar.nonterminals

    for i, ai in enumerate(order):
        earlier = order[:i]
        grammar.productions[ai], substituted = _substitute_leading(grammar, ai, earlier)
        for aj in earlier:
            if aj in substituted:
                steps.append(f"Substituted productions of {aj} into {ai}")

        recursive = []
        non_recursive = []
        for production in grammar.productions[ai]:
            if production[0] == ai:
                alpha = _strip_epsilon(production[1:])
                if alpha == [EPSILON]:
                    steps.append(f"Dropped useless production {ai} -> {ai}")
                    continue
                recursive.append(alpha)
            else:
                non_recursive.append(production)

        if not recursive:
            continue

        new_nonterminal = grammar.fresh_nonterminal(ai)
        steps.append(f"Removing left recursion from {ai}")
        steps.append(f"Created new non-terminal {new_nonterminal}")
        if not non_recursive:
            logger.warning("%s has only left-recursive productions and derives no terminal string", ai)

        grammar.productions[ai] = [_strip_epsilon(production + [new_nonterminal]) for production in non_recursive]
        grammar.productions[new_nonterminal] = [alpha + [new_nonterminal] for alpha in recursive] + [[EPSILON]]

    return steps


def first_of_sequence(symbols, first, grammar):
    """FIRST of a symbol string; contains epsilon iff the whole string is nullable."""
    result = set()
    for symbol in symbols:
        if symbol == EPSILON:
            continue
        if not grammar.is_nonterminal(symbol):
            result.add(symbol)
            return result
        result |= first[symbol] - {EPSILON}
        if EPSILON not in first[symbol]:
            return result
    result.add(EPSILON)
    return result


def compute_first(grammar):
    first = {nt: set() for nt in grammar.nonterminals}

    changed = True
    while changed:
        changed = False
        for nt, productions in grammar.productions.items():
            for production in productions:
                additions = first_of_sequence(production, first, grammar) - first[nt]
                if additions:
                    first[nt] |= additions
                    changed = True
    return first


def compute_follow(grammar, first):
    follow = {nt: set() for nt in grammar.nonterminals}
    follow[grammar.start].add(END_OF_INPUT)

    changed = True
    while changed:
        changed = False
        for nt, productions in grammar.productions.items():
            for production in productions:
                for i, symbol in enumerate(production):
                    if not grammar.is_nonterminal(symbol):
                        continue
                    suffix_first = first_of_sequence(production[i + 1:], first, grammar)
                    additions = suffix_first - {EPSILON}
                    if EPSILON in suffix_first:
                        additions |= follow[nt]
                    additions -= follow[symbol]
                    if additions:
                        follow[symbol] |= additions
                        changed = True
    return follow


def build_parsing_table(grammar, first, follow):
    """Predictive table ``(nonterminal, terminal) -> production``.

    Cells are owned by a single alternative; a second alternative claiming
    the same cell raises ``NotLL1Error``.
    """
    table = {}
    owners = {}

    for nt, productions in grammar.productions.items():
        for index, production in enumerate(productions):
            first_set = first_of_sequence(production, first, grammar)
            lookaheads = first_set - {EPSILON}
            if EPSILON in first_set:
                lookaheads |= follow[nt]

            for terminal in sorted(lookaheads):
                key = (nt, terminal)
                if key in owners and owners[key] != index:
                    logger.warning("LL(1) conflict at (%s, %s)", nt, terminal)
                    raise NotLL1Error(nt, terminal, table[key], production)
                owners[key] = index
                table[key] = production

    logger.debug("Parsing table built with %d entries", len(table))
    return table


class StepKind(enum.Enum):
    MATCH = 'match'
    EXPAND = 'expand'
    ERROR = 'error'


class ParseErrorKind(enum.Enum):
    MISMATCH = 'mismatch'
    NO_PRODUCTION = 'no_production'
    LEFTOVER_INPUT = 'leftover_input'
    UNEXPECTED_END = 'unexpected_end'


@dataclass
class ParseStep:
    """Parser configuration before an action, and the action taken."""
    stack: List[str]
    input: List[str]
    action: str = ''
    kind: Optional[StepKind] = None

    def to_dict(self):
        return {"stack": list(self.stack), "input": list(self.input), "action": self.action}


@dataclass
class ParseResult:
    steps: List[ParseStep] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
    error_kind: Optional[ParseErrorKind] = None

    def to_dict(self):
        result = {"steps": [step.to_dict() for step in self.steps], "success": self.success}
        if self.error:
            result["error"] = self.error
        return result


def tokenize_input(text):
    return (text or '').split() + [END_OF_INPUT]


def ll1_parse(grammar, table, text):
    """Run the predictive parser over whitespace separated ``text``.

    Failures are returned, not raised, along with the trace so far.
    """
    tokens = tokenize_input(text)
    stack = [END_OF_INPUT, grammar.start]
    position = 0
    steps = []

    def fail(kind, message):
        steps[-1].action = f"Error: {message}"
        steps[-1].kind = StepKind.ERROR
        logger.info("Parse failed (%s): %s", kind.value, message)
        return ParseResult(steps, False, message, kind)

    while stack:
        top = stack[-1]
        steps.append(ParseStep(list(stack), tokens[position:]))

        if position >= len(tokens):
            return fail(ParseErrorKind.UNEXPECTED_END, f"Unexpected end of input, expected {top}")

        current_token = tokens[position]
        if top == current_token:
            stack.pop()
            position += 1
            steps[-1].action = f"Matched {top}"
            steps[-1].kind = StepKind.MATCH
        elif not grammar.is_nonterminal(top):
            return fail(ParseErrorKind.MISMATCH, f"Mismatch: expected {top} but got {current_token}")
        else:
            production = table.get((top, current_token))
            if production is None:
                return fail(
                    ParseErrorKind.NO_PRODUCTION,
                    f"No production found for {top} with input {current_token}",
                )
            stack.pop()
            for symbol in reversed(production):
                if symbol != EPSILON:
                    stack.append(symbol)
            steps[-1].action = f"{top} -> {' '.join(production)}"
            steps[-1].kind = StepKind.EXPAND

    if position < len(tokens):
        remaining = ' '.join(tokens[position:])
        steps.append(ParseStep([], tokens[position:]))
        return fail(ParseErrorKind.LEFTOVER_INPUT, f"Input not fully consumed. Remaining: {remaining}")

    logger.info("Parsed %r in %d steps", text, len(steps))
    return ParseResult(steps, True)


class LL1Analyzer:
    """Runs the grammar pipeline in order and keeps every intermediate result.

    ``steps`` mirrors what the UI shows: the left recursion log, FIRST and
    FOLLOW sets, table messages and the last parse trace.
    """

    def __init__(self, grammar_text, start=None):
        self.grammar = parse_grammar(grammar_text, start)
        self.original = Grammar(
            {nt: [list(p) for p in productions] for nt, productions in self.grammar.productions.items()},
            start=self.grammar.start,
        )
        self.steps = {
            "left_recursion": [],
            "first": {},
            "follow": {},
            "table": [],
            "parsing": [],
        }

        unreachable = unreachable_nonterminals(self.grammar)
        if unreachable:
            logger.warning(
                "Nonterminals unreachable from start symbol %s: %s",
                self.grammar.start, ', '.join(unreachable),
            )

        self.steps["left_recursion"] = remove_left_recursion(self.grammar)
        self.first = compute_first(self.grammar)
        self.steps["first"] = self.first
        self.follow = compute_follow(self.grammar, self.first)
        self.steps["follow"] = self.follow
        self.table = build_parsing_table(self.grammar, self.first, self.follow)
        self.steps["table"].append("Parsing table built successfully.")

    @property
    def nonterminals(self):
        return self.grammar.nonterminals

    @property
    def terminals(self):
        return self.grammar.terminals

    def parse(self, text):
        result = ll1_parse(self.grammar, self.table, text)
        self.steps["parsing"] = result.steps
        return result

    def table_to_dict(self):
        return {f"{nt},{terminal}": ' '.join(production) for (nt, terminal), production in self.table.items()}

    def to_dict(self):
        return {
            "grammar": self.grammar.lines(),
            "first": {nt: sorted(symbols) for nt, symbols in self.first.items()},
            "follow": {nt: sorted(symbols) for nt, symbols in self.follow.items()},
            "table": self.table_to_dict(),
        }
