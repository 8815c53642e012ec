"""Command-line interface for hiveflow."""
