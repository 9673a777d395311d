"""Core domain helpers."""
