"""Delivery-process metrics mined from GitHub pull request history."""

__version__ = "0.1.0"
