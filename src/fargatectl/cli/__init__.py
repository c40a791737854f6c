"""Command line interface for fargatectl."""
