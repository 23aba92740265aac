"""Spotify extended streaming history ingestion library."""
