"""Concurrency utilities for Wharf."""

from wharf.concurrency.locks import target_lock

__all__ = ["target_lock"]
