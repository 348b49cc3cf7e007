"""Storage layer.

This package persists bookings and detail sequences in a relational
store, owns the schema and its migrations, and exposes the SDK client.
"""
