"""Observability utilities for the interview engine."""
from .logger import log_event

__all__ = ["log_event"]
