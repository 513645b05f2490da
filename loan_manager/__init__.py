"""Loan Manager API — user accounts and transactional email."""

__version__ = "1.0.0"
