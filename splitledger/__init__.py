"""Split Ledger - split a bill, track who has paid."""

__version__ = "0.1.0"
