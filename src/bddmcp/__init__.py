"""bddmcp: BDD step execution engine with module detection and self-healing."""

__version__ = "0.1.0"
