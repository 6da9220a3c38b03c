"""Reserved symbols shared by the regex and grammar pipelines."""

EPSILON = 'ε'

# '^' is accepted as epsilon in regex input
REGEX_EPSILON_ALIASES = {'ε', '^'}
GRAMMAR_EPSILON_ALIASES = {'ε', 'eps', 'epsilon', '^'}

CONCAT = '.'
UNION = '|'
STAR = '*'
LPAREN = '('
RPAREN = ')'
OPERATORS = {STAR, CONCAT, UNION, LPAREN, RPAREN}

# Augmented end marker for the syntax tree construction
END_MARKER = '#'

# End of input for the LL(1) parser
END_OF_INPUT = '$'

PRIME = "'"


def precedence(op):
    """Defines operator precedence."""
    if op == STAR:
        return 3
    elif op == CONCAT:
        return 2
    elif op == UNION:
        return 1
    return 0
