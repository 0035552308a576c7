"""Data models for streams, decisions and jobs."""
