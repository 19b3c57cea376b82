"""Checkout back end: payment intents and retry utilities."""

__version__ = "0.1.0"
