"""Public, token-addressed trip share links."""
