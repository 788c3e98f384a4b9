"""Bundled catalog data and key-value persistence."""
