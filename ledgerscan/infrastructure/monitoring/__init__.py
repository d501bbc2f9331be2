"""Logging setup and performance tracking."""
