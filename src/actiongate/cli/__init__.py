"""Command-line interface for ActionGate."""
