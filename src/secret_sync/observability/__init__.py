"""Observability for the secret synchronization controller."""
