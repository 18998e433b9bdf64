"""Data models for eventsync."""
