"""Testnet token deployment and rate-limited transfer batches."""

__version__ = "0.1.0"
