"""Core utilities for Signoff."""

from .env import load_env
from .logs import clear_logs, get_event_logger, get_logger, log_calls, log_message

__all__ = [
    "load_env",
    "get_event_logger",
    "get_logger",
    "log_calls",
    "log_message",
    "clear_logs",
]
