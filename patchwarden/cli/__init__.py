"""Patchwarden CLI — Typer-based command-line interface.

Thin wiring over the transaction engine: apply a structured batch, list
committed transactions, revert one, or approve orphaned pending ones.

All output uses Rich for formatted terminal display.
"""
