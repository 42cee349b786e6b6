"""Database helpers for the tick store."""
