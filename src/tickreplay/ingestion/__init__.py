"""Tick ingestion from CSV files into the tick store."""
