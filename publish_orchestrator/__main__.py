"""Entry point for running publish_orchestrator as a module."""

from publish_orchestrator.cli import cli

if __name__ == "__main__":
    cli()
