class RegexSyntaxError(ValueError):
    """Raised when a regular expression cannot be compiled."""

    def __init__(self, message, regex=None):
        super().__init__(f"Invalid Regular Expression: {message}")
        self.regex = regex


class GrammarFormatError(ValueError):
    """Raised when a grammar line cannot be ingested."""

    def __init__(self, message, line_number=None, line=None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(f"Invalid grammar: {message}")
        self.line_number = line_number
        self.line = line


class NotLL1Error(ValueError):
    """Raised when two productions compete for the same parsing table cell."""

    def __init__(self, nonterminal, terminal, existing, conflicting):
        super().__init__(
            f"Grammar is not LL(1): Conflict at {nonterminal} for terminal {terminal} "
            f"({nonterminal} -> {' '.join(existing)} vs {nonterminal} -> {' '.join(conflicting)})"
        )
        self.nonterminal = nonterminal
        self.terminal = terminal
        self.existing = existing
        self.conflicting = conflicting
