"""Command line interface for ekistamp."""
