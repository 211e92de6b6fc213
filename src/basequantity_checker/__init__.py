"""Base quantity checker: flag BIM elements with zero, negative or missing quantities."""

__version__ = "0.1.0"
