"""Command line interface for profitrack."""
