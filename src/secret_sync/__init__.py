"""Synchronize secrets from external secret stores into cluster secrets."""

__version__ = "0.1.0"
