"""Ingestion service: drives extraction, decoding, and persistence runs."""
