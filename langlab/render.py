"""Adapters from automata, trees and tables to graphviz graphs and DataFrames."""

import graphviz
import pandas as pd

from .symbols import EPSILON


def _automaton_graph(title):
    dot = graphviz.Digraph(comment=title)
    dot.attr(rankdir='LR')  # Left to right layout
    return dot


def nfa_graph(nfa, title="NFA"):
    """Create a graphical representation of a Thompson NFA using Graphviz."""
    dot = _automaton_graph(title)

    for state in nfa.states:
        shape = 'doublecircle' if state is nfa.accept else 'circle'
        dot.node(str(state.id), shape=shape)

    # Add a special start state pointer
    dot.node('start', shape='none', label='')
    dot.edge('start', str(nfa.start.id))

    for source, symbol, target in nfa.transition_list():
        dot.edge(str(source), str(target), label=symbol)

    return dot


def dfa_graph(dfa, title="DFA"):
    """Create a graphical representation of a DFA using Graphviz."""
    dot = _automaton_graph(title)
    accept = set(dfa.accept)

    for state in dfa.states:
        shape = 'doublecircle' if state in accept else 'circle'
        dot.node(dfa.name(state), shape=shape)

    dot.node('start', shape='none', label='')
    dot.edge('start', dfa.name(dfa.start))

    for source, moves in sorted(dfa.transitions.items()):
        for symbol, target in sorted(moves.items()):
            dot.edge(dfa.name(source), dfa.name(target), label=symbol)

    return dot


def syntax_tree_graph(tree, title="Syntax Tree"):
    """Draw the augmented syntax tree, annotating firstpos/lastpos."""
    dot = graphviz.Digraph(comment=title)
    dot.attr('node', shape='box', style='rounded')

    for node in tree.nodes:
        label = node.symbol
        if node.position is not None and node.symbol != EPSILON:
            label = f"{node.symbol} ({node.position})"
        first = ','.join(str(p) for p in sorted(node.firstpos))
        last = ','.join(str(p) for p in sorted(node.lastpos))
        dot.node(node.id, label=f"{label}\\n{{{first}}} {{{last}}}")
        for child in (node.left, node.right):
            if child is not None:
                dot.edge(node.id, child.id)

    return dot


def dfa_table(dfa):
    """The DFA's transition table with start and final state markers."""
    alphabet = sorted(dfa.alphabet)
    accept = set(dfa.accept)
    rows = []
    for state in dfa.states:
        label = dfa.name(state)
        if state == dfa.start:
            label += " (Start)"
        if state in accept:
            label += " (Final)"
        moves = dfa.transitions.get(state, {})
        row = [label, '{' + ', '.join(str(m) for m in dfa.members[state]) + '}']
        row.extend(dfa.name(moves[symbol]) if symbol in moves else "-" for symbol in alphabet)
        rows.append(row)

    return pd.DataFrame(rows, columns=["State", "Set"] + alphabet)


def followpos_table(tree):
    data = {"Position": [], "Symbol": [], "followpos": []}
    for position in sorted(tree.symbols):
        data["Position"].append(position)
        data["Symbol"].append(tree.symbols[position])
        follow = tree.followpos.get(position, set())
        data["followpos"].append('{' + ', '.join(str(p) for p in sorted(follow)) + '}' if follow else "∅")
    return pd.DataFrame(data)


def first_follow_table(analyzer):
    data = {"Non-terminal": [], "FIRST": [], "FOLLOW": []}
    for nt in analyzer.nonterminals:
        data["Non-terminal"].append(nt)
        data["FIRST"].append(', '.join(sorted(analyzer.first[nt])))
        data["FOLLOW"].append(', '.join(sorted(analyzer.follow[nt])))
    return pd.DataFrame(data)


def parsing_table_frame(analyzer):
    """LL(1) table, one row per nonterminal and one column per terminal."""
    terminals = analyzer.terminals
    rows = []
    for nt in analyzer.nonterminals:
        row = [nt]
        for terminal in terminals:
            production = analyzer.table.get((nt, terminal))
            row.append(f"{nt} -> {' '.join(production)}" if production else "")
        rows.append(row)
    return pd.DataFrame(rows, columns=["Non-terminal"] + terminals)


def trace_frame(result):
    data = {"Stack": [], "Input": [], "Action": []}
    for step in result.steps:
        data["Stack"].append(' '.join(step.stack))
        data["Input"].append(' '.join(step.input))
        data["Action"].append(step.action)
    return pd.DataFrame(data)
