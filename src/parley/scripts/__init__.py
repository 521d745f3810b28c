"""Command line maintenance scripts."""
