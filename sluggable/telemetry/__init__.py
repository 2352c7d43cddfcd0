"""Logging for slug generation events."""

from .logger import SlugLogger

__all__ = ["SlugLogger"]
