"""Utility modules (errors, logging)."""
