"""Logging setup for kico."""
