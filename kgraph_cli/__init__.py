"""kgraph-cli: keyboard-driven knowledge-graph navigator for the terminal."""

__version__ = "0.3.0"
