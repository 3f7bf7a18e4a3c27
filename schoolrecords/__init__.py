"""School records API: routine CRUD behind a per-resource authorization engine."""

__version__ = "0.1.0"
