"""Reporters — Rich tables and JSON."""
