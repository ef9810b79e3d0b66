"""Package data for orgtree (database schema)."""
