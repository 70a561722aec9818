"""Zoom account linking -- identity resolution and pending OAuth connections."""
