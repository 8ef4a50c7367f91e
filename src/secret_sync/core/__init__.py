"""Core reconcile logic."""
