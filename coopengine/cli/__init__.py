"""Command-line interface for Cooperation Engine."""
