"""Scoped, read-only public share links for project collaboration tools."""

__version__ = "0.1.0"
