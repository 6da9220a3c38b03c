import logging
import warnings

import streamlit as st

from langlab import (
    GrammarFormatError, LL1Analyzer, NotLL1Error, RegexSyntaxError,
    nfa_to_dfa, re_to_nfa, regex_to_postfix, syntax_tree_dfa,
)
from langlab.render import (
    dfa_graph, dfa_table, first_follow_table, followpos_table, nfa_graph,
    parsing_table_frame, syntax_tree_graph, trace_frame,
)

warnings.filterwarnings('ignore')
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("langlab.app")

REGEX_EXAMPLES = [
    ("(a|b)*abb", "Strings ending with 'abb'"),
    ("a|b", "A single 'a' or 'b'"),
    ("a*b*", "Any number of a's followed by any number of b's"),
    ("(a|b)*b(a|b)(a|b)", "Strings with 'b' as third-to-last character"),
    ("(0|1)*101(0|1)*", "Binary strings containing '101'"),
    ("(ab|ba)*", "Strings built from 'ab' and 'ba' blocks"),
    ("(a|ε)(b|ε)(c|ε)", "Optional a, b and c in order"),
    ("(aa)*", "Strings of even length containing only a's"),
]

DEFAULT_GRAMMAR = "E -> E + T | T\nT -> T * F | F\nF -> ( E ) | id"


def show_steps(title, steps):
    with st.expander(title):
        st.code('\n'.join(steps), language="text")


def regex_page():
    st.markdown("""
    Convert a regular expression into a DFA either through **Thompson's Construction** followed by the
    **Subset Construction**, or directly from the **augmented syntax tree** using followpos.
    """)

    selected = st.selectbox(
        "Try an example:",
        options=[pattern for pattern, _ in REGEX_EXAMPLES],
        format_func=lambda pattern: f"{pattern}  ({dict(REGEX_EXAMPLES)[pattern]})",
    )
    regex = st.text_input(
        "Enter Regular Expression:",
        value=selected,
        help="Use | for union, * for Kleene star, ε or ^ for epsilon, and parentheses for grouping",
    )
    method = st.radio(
        "Construction method:",
        ("Thompson + Subset Construction", "Syntax Tree (followpos)"),
        horizontal=True,
    )

    if not regex:
        return

    try:
        st.write("## Postfix:", regex_to_postfix(regex).replace('*', '\\*'))

        if method.startswith("Thompson"):
            nfa, nfa_steps = re_to_nfa(regex)
            dfa, dfa_steps = nfa_to_dfa(nfa)

            st.subheader("Step 1: Thompson's Construction (NFA-ε)")
            st.graphviz_chart(nfa_graph(nfa, f"NFA for {regex}"))
            st.caption("Double circles are accepting states. Unlabeled arrows into a state mark the start state.")
            show_steps("Show Thompson's Construction Steps", nfa_steps)

            st.subheader("Step 2: Subset Construction (DFA)")
            show_steps("Show NFA to DFA Conversion Steps", dfa_steps)
        else:
            dfa, steps, tree = syntax_tree_dfa(regex)

            st.subheader("Step 1: Augmented Syntax Tree")
            col1, col2 = st.columns([2, 1])
            with col1:
                st.graphviz_chart(syntax_tree_graph(tree))
                st.caption("Each node shows {firstpos} {lastpos}. Leaves carry their position.")
            with col2:
                st.markdown("### followpos")
                st.table(followpos_table(tree))
            show_steps("Show Syntax Tree Construction Steps", steps)

            st.subheader("Step 2: DFA from followpos")

        col1, col2 = st.columns([1, 2])
        with col1:
            st.markdown("### Transition Table:")
            st.table(dfa_table(dfa))
        with col2:
            st.graphviz_chart(dfa_graph(dfa, f"DFA for {regex}"))
    except RegexSyntaxError as e:
        logger.info("Rejected regex %r: %s", regex, e)
        st.error(str(e))


def grammar_page():
    st.markdown("""
    Enter a context-free grammar, one nonterminal per line as `A -> alt1 | alt2`, with symbols separated by
    spaces and `ε` for the empty production. Left recursion is removed before FIRST/FOLLOW sets and the
    predictive parsing table are computed.
    """)

    grammar_text = st.text_area("Enter Grammar:", value=DEFAULT_GRAMMAR, height=150)
    input_string = st.text_input("Input String:", placeholder="e.g., id + id * id")

    if not grammar_text.strip():
        return

    try:
        analyzer = LL1Analyzer(grammar_text)
    except (GrammarFormatError, NotLL1Error) as e:
        logger.info("Grammar analysis failed: %s", e)
        st.error(str(e))
        return

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("### Original Grammar")
        st.code(str(analyzer.original), language="text")
    with col2:
        st.markdown("### After Left Recursion Removal")
        st.code(str(analyzer.grammar), language="text")
    if analyzer.steps["left_recursion"]:
        show_steps("Show Left Recursion Removal Steps", analyzer.steps["left_recursion"])

    st.subheader("FIRST and FOLLOW Sets")
    st.table(first_follow_table(analyzer))

    st.subheader("LL(1) Parsing Table")
    st.table(parsing_table_frame(analyzer))

    if input_string:
        result = analyzer.parse(input_string)
        st.subheader("Parsing Steps")
        st.table(trace_frame(result))
        if result.success:
            st.success(f"'{input_string}' was accepted.")
        else:
            st.error(result.error)


def main():
    st.set_page_config(
        page_title="Language Lab | Automata & LL(1)",
        page_icon="🧠",
        layout="wide"
    )

    st.title("Language Lab: Regular Expressions to DFA and LL(1) Parsing")

    input_type = st.radio(
        "Select Input Type:",
        ("Regular Expression", "LL(1) Grammar"),
        help="Choose whether to convert a Regular Expression or analyze a Context-Free Grammar"
    )

    if input_type == "Regular Expression":
        regex_page()
    else:
        grammar_page()


if __name__ == "__main__":
    main()
