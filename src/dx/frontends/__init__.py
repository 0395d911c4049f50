"""User-facing frontends for dx."""
