"""Loan lifecycle, amortization and eligibility engine for cooperatives."""

__version__ = "0.1.0"
