"""Statcrab CLI commands."""
