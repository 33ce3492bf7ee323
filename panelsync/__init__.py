"""DirectAdmin integration and reconciliation service."""

__version__ = "0.3.0"
