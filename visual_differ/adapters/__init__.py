"""Adapters - implementations of application ports."""
