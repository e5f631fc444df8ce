"""Command line interface for publish_orchestrator."""

from publish_orchestrator.cli.commands import cli, main

__all__ = ["cli", "main"]
