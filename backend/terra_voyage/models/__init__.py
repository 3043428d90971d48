"""Domain enums and pydantic models shared across routers and services."""
