"""Aggregation services backing the dashboard API."""
