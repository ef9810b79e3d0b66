"""orgtree - Employee hierarchy and reporting-line management."""

__version__ = "0.1.0"
