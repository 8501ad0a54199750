"""Utility helpers for Wharf."""
