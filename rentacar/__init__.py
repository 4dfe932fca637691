"""Rentacar web backend-for-frontend and authenticated API access layer."""

__version__ = "1.0.0"
