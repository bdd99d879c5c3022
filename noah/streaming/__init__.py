"""Streaming helpers."""
