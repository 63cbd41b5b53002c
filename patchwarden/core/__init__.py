"""Patchwarden transaction engine.

Leaves first: record backends and the transaction store, snapshots and
the operation applier, the approval gate, the directory lock, and the
coordinator that drives a batch through its lifecycle.
"""
