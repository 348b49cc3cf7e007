"""Booking ingestion pipeline.

This package tokenizes and normalizes raw booking exports, builds the
booking and detail entities, and loads them in ordered chunks.
"""
