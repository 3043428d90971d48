"""Onboarding wizard data and profile updates."""
