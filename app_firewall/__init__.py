"""Firewall allow-rules for an application installed in the interactive user's profile."""

__version__ = "0.1.0"
