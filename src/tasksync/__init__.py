"""Webhook synchronization between GitHub and project tasks."""

__version__ = "1.0.0"
