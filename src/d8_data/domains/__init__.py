"""Domain modules for d8-data."""
