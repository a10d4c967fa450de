"""Lobby collection, enrichment and query services."""
