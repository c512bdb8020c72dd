"""Booking and ledger consistency engine for a photography studio."""

__version__ = "0.1.0"
