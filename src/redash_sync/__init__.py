"""redash-sync: keep a local mirror of Redash queries in sync with the server."""

__version__ = "0.3.0"
