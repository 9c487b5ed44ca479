"""Reconciliation engine core: context, checks and the public operations."""
