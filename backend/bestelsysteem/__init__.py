"""Bestelsysteem: table ordering backend for bars and kitchens at a live event."""

__version__ = "0.1.0"
