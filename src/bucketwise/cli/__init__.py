"""Command-line client for Bucketwise."""

from bucketwise.cli.main import app, main

__all__ = ["app", "main"]
