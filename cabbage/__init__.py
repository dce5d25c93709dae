"""A movie catalogue server with a journaled store and an interactive client."""

__version__ = "0.1.0"