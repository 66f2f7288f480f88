"""Account management API with OAuth identity reconciliation."""

__version__ = "1.0.0"
