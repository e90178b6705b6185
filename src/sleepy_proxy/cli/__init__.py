"""Command line interface for sleepy-proxy."""
