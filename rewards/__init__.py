"""Rewards ledger and provably-fair wagering engine."""

__version__ = "0.1.0"
