"""Freelance Tax - monthly and yearly taxes for Polish B2B freelancers."""

__version__ = "0.1.0"
