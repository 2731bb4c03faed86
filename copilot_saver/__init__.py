"""Copilot Saver — multi-tenant GitHub Copilot usage, metrics, and seat storage."""

__version__ = "0.1.0"
