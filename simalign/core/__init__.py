"""Core models shared across simalign."""
