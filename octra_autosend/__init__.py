"""Recurring OCT transfers from one wallet to a target list."""

__version__ = "0.1.0"
