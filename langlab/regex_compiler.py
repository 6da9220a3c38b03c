"""Regular expression front end: tokenizing, implicit concatenation and
shunting-yard conversion to postfix.

Supported syntax is deliberately small: single-character alphanumeric
symbols, ``|`` for union, ``*`` for Kleene star, parentheses for grouping
and ``ε`` (or ``^``) for the empty string. Concatenation is implicit.
"""

import logging

from .errors import RegexSyntaxError
from .symbols import (
    CONCAT, END_MARKER, EPSILON, LPAREN, OPERATORS, REGEX_EPSILON_ALIASES,
    RPAREN, STAR, UNION, precedence,
)

logger = logging.getLogger(__name__)


def is_symbol(token):
    """True for operand tokens (literals, epsilon and the end marker)."""
    return token not in OPERATORS


def tokenize(regex):
    """Split a user regex into single-character tokens.

    Whitespace is dropped and epsilon aliases are normalized to ``ε``.
    Reserved characters and anything that is not alphanumeric are rejected.
    """
    if regex is None:
        raise RegexSyntaxError("empty expression", regex)

    tokens = []
    for char in regex:
        if char.isspace():
            continue
        if char in REGEX_EPSILON_ALIASES:
            tokens.append(EPSILON)
        elif char in (UNION, STAR, LPAREN, RPAREN):
            tokens.append(char)
        elif char in (CONCAT, END_MARKER):
            raise RegexSyntaxError(f"'{char}' is reserved", regex)
        elif char.isalnum():
            tokens.append(char)
        else:
            raise RegexSyntaxError(f"unsupported character '{char}'", regex)

    if not tokens:
        raise RegexSyntaxError("empty expression", regex)
    check_balanced(tokens, regex)
    return tokens


def check_balanced(tokens, regex=None):
    depth = 0
    for token in tokens:
        if token == LPAREN:
            depth += 1
        elif token == RPAREN:
            depth -= 1
            if depth < 0:
                raise RegexSyntaxError("unbalanced parentheses: unexpected ')'", regex)
    if depth:
        raise RegexSyntaxError("unbalanced parentheses: missing ')'", regex)


def insert_concat_operators(tokens):
    """Insert explicit concatenation operators (.) where necessary."""
    if not tokens:
        return []

    output = []
    for i in range(len(tokens) - 1):
        current, following = tokens[i], tokens[i + 1]
        output.append(current)

        # ab -> a.b, a(b) -> a.(b), a*b -> a*.b, (a)b -> (a).b
        if (
            (is_symbol(current) or current in (STAR, RPAREN)) and
            (is_symbol(following) or following == LPAREN)
        ):
            output.append(CONCAT)

    output.append(tokens[-1])
    return output


def infix_to_postfix(tokens, regex=None):
    """Convert an infix token list to postfix (RPN) with shunting-yard.

    Expects explicit concatenation operators; all binary operators are
    left associative.
    """
    output = []
    stack = []

    for token in tokens:
        if is_symbol(token):
            output.append(token)
        elif token == LPAREN:
            stack.append(token)
        elif token == RPAREN:
            while stack and stack[-1] != LPAREN:
                output.append(stack.pop())
            if not stack:
                raise RegexSyntaxError("unbalanced parentheses: unexpected ')'", regex)
            stack.pop()  # Discard the '('
        else:
            while stack and stack[-1] != LPAREN and precedence(stack[-1]) >= precedence(token):
                output.append(stack.pop())
            stack.append(token)

    while stack:
        op = stack.pop()
        if op == LPAREN:
            raise RegexSyntaxError("unbalanced parentheses: missing ')'", regex)
        output.append(op)

    return output


def compile_postfix(regex):
    """Tokenize ``regex`` and return its postfix token list."""
    postfix = infix_to_postfix(insert_concat_operators(tokenize(regex)), regex)
    logger.debug("Postfix notation for %r: %s", regex, ''.join(postfix))
    return postfix


def regex_to_postfix(regex):
    """Return the postfix form of ``regex`` as a string, e.g. ``a|b`` -> ``ab|``."""
    return ''.join(compile_postfix(regex))


def augmented_postfix(regex):
    """Postfix of ``(regex)#`` for the syntax tree construction."""
    tokens = [LPAREN] + tokenize(regex) + [RPAREN, END_MARKER]
    postfix = infix_to_postfix(insert_concat_operators(tokens), regex)
    logger.debug("Augmented postfix for %r: %s", regex, ''.join(postfix))
    return postfix
