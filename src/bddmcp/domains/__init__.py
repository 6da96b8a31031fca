"""Domain bounded contexts for the bddmcp execution engine."""
