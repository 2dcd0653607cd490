"""Federate a parent issue into linked child issues across repositories."""

__version__ = "0.1.0"
