"""Signoff: review-and-approval workflow engine for marketing assets."""

__version__ = "0.3.0"
