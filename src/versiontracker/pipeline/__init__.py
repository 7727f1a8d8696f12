"""Pipeline flows."""
