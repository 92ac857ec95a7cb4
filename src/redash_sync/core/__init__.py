"""Redash API access shared by the CLI and the sync engine."""

from .client import RedashClient

__all__ = ["RedashClient"]
