"""Practice session lifecycle service."""
