"""Subcommands registered by ``patchwarden.cli.app``."""
