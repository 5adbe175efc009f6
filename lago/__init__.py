"""Friendly Lago AI: flags offensive comments and suggests kinder rewrites."""

__version__ = "1.0.0"
