"""Use cases — entry points shared by the CLI."""
