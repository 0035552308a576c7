"""Transcoding orchestration pipeline components."""
