"""Map API quota tracking and provider fallback."""
