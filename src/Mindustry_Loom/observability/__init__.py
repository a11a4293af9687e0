"""Observability helpers (metrics)."""
