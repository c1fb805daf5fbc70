"""Configuration package for Signoff."""

from .config import (
    DatabaseConfig,
    ReviewConfig,
    SignoffConfig,
    SystemConfig,
    config,
)

__all__ = [
    "SignoffConfig",
    "DatabaseConfig",
    "ReviewConfig",
    "SystemConfig",
    "config",
]
