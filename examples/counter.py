"""A small set of nodes for a counter program.

Inspect them with:

    nodeweave inspect examples/counter.py --var nodes
    nodeweave manifest examples/counter.py --var nodes
"""

import nodeweave as nw

# A push entry point that fires the counter on every call
tick = nw.with_push_eval_name(nw.expr("1"), "tick")

# Adds its input to the persistent count and returns the new total
counter = nw.WithState(nw.ExprNode("{state}.add({})"), "Counter")

# A typed function node that needs a third-party library at runtime
fmt = nw.FnNode.parse(
    """
def format_count(count: int) -> str:
    return humanize.intcomma(count)
""",
    crate_deps=['humanize = "^4.9"'],
)

# Prints the formatted count when pulled
show = nw.with_pull_eval_name(nw.expr("print({})"), "show")

nodes = {"tick": tick, "counter": counter, "format": fmt, "show": show}
