"""Command line commands for plugindex."""
