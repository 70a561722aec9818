"""Mattermost integration -- REST client and payload schemas."""
