"""Itinerary generation."""
