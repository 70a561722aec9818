"""Zoom integration -- REST client, payload schemas and user-facing prompts."""
