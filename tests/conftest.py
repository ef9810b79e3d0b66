"""Pytest configuration and fixtures for orgtree tests."""

import os

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

# Configuration from the developer's shell must not leak into tests
for _name in ("ORGTREE_DB_PATH", "ORGTREE_BUSY_TIMEOUT", "ORGTREE_LOG_LEVEL", "ORGTREE_TREE_NAME"):
    os.environ.pop(_name, None)
