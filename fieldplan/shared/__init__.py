"""Shared (non-domain) helpers."""
