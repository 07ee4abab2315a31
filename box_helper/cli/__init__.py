"""Command line interface for box."""
