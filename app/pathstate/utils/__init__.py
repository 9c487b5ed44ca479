"""Utility modules for pathstate."""
